"""
WellQuest Backend - Gamified Wellness Platform
Firebase Cloud Functions + Firestore Backend

Main entry point for the Flask API wrapped as Firebase Functions
"""

import logging

from flask import Flask, request, jsonify
from flask_cors import CORS
from firebase_functions import https_fn, options

from data import quest_data
from services import ServiceRegistry
from services.social_service import USER_POST_TYPES
from utils.auth_middleware import require_auth, require_admin, current_user_id
from utils.config import config
from utils.error_handler import (
    handle_error, validate_request_data, parse_location, parse_timestamp,
    ValidationError, AuthenticationError, AuthorizationError, NotFoundError
)
from utils.firebase import get_db

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)
CORS(app, origins=config.ALLOWED_ORIGINS)

_services = None


def init_services(db, clock=None):
    """Bind the routes to services built on the given Firestore client"""
    global _services
    _services = ServiceRegistry(db, clock)
    return _services


def get_services():
    if _services is None:
        init_services(get_db(config))
    return _services


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _int_arg(name, default, minimum=1, maximum=None):
    value = request.args.get(name)
    if value is None:
        return default
    try:
        value = int(value)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be an integer", field=name)
    if value < minimum or (maximum is not None and value > maximum):
        raise ValidationError(f"Query parameter '{name}' is out of range", field=name)
    return value


def _float_arg(name, default=None):
    value = request.args.get(name)
    if value is None:
        if default is None:
            raise ValidationError(f"Query parameter '{name}' is required", field=name)
        return default
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be a number", field=name)


def _current_level():
    return get_services().user.get_user(current_user_id()).get('level', 1)


# Health check endpoint
@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'service': 'wellquest-backend',
        'version': config.API_VERSION,
        'environment': config.ENVIRONMENT
    })

# ============= AUTH ENDPOINTS =============

@app.route('/auth/signup', methods=['POST'])
def signup():
    """Register a new user"""
    try:
        data = _json_body()
        validate_request_data(data, ['email', 'password'])
        # Normalize email casing to prevent duplicate vs not-found issues
        email = str(data['email']).strip().lower()

        result = get_services().auth.create_user(
            email=email,
            password=data['password'],
            display_name=data.get('display_name'),
            avatar=data.get('avatar', '')
        )
        return jsonify(result), 201
    except Exception as e:
        return handle_error(e)

@app.route('/auth/anonymous', methods=['POST'])
def sign_in_anonymously():
    """Create an anonymous explorer account"""
    try:
        result = get_services().auth.sign_in_anonymously()
        return jsonify(result), 201
    except Exception as e:
        return handle_error(e)

@app.route('/auth/login', methods=['POST'])
@require_auth
def login():
    """Return a custom token and profile for the signed-in caller"""
    try:
        result = get_services().auth.login_user(current_user_id())
        return jsonify(result)
    except Exception as e:
        return handle_error(e)

@app.route('/auth/verify', methods=['POST'])
def verify_token():
    """Verify Firebase ID token"""
    try:
        token = request.headers.get('Authorization', '').replace('Bearer ', '').strip()
        if not token:
            raise AuthenticationError('No token provided')

        return jsonify(get_services().auth.verify_user_token(token))
    except Exception as e:
        return handle_error(e)

# ============= USER ENDPOINTS =============

@app.route('/user/<user_id>', methods=['GET'])
@require_auth
def get_user_profile(user_id):
    """Full profile for the owner, public profile for everyone else"""
    try:
        if current_user_id() == user_id:
            profile = get_services().user.get_user_profile(user_id)
        else:
            profile = get_services().user.get_public_profile(user_id)
        return jsonify(profile)
    except Exception as e:
        return handle_error(e)

@app.route('/user/<user_id>', methods=['PUT'])
@require_auth
def update_user_profile(user_id):
    """Update user profile"""
    try:
        if current_user_id() != user_id:
            raise AuthorizationError('You can only update your own profile')

        result = get_services().user.update_user_profile(user_id, _json_body())
        return jsonify(result)
    except Exception as e:
        return handle_error(e)

# ============= MAP ENDPOINTS =============

@app.route('/map/assets', methods=['GET'])
@require_auth
def get_nearby_assets():
    """Territories and knowledge orbs around a point"""
    try:
        assets = get_services().asset.get_nearby_assets(
            _float_arg('lat'),
            _float_arg('lng'),
            radius=_float_arg('radius', 1000.0),
            asset_type=request.args.get('type')
        )
        return jsonify({'assets': assets, 'count': len(assets)})
    except Exception as e:
        return handle_error(e)

@app.route('/map/territory/<asset_id>/capture', methods=['POST'])
@require_auth
def capture_territory(asset_id):
    """Capture a territory the player is standing in"""
    try:
        lat, lng = parse_location(_json_body())
        result = get_services().asset.capture_territory(asset_id, current_user_id(), lat, lng)
        achievements = get_services().achievement.check_and_award(current_user_id())
        get_services().challenge.record_contribution(current_user_id(), 'territories', 1)
        result['achievements_unlocked'] = [a['id'] for a in achievements]
        return jsonify(result)
    except Exception as e:
        return handle_error(e)

@app.route('/map/territory/<asset_id>/contest', methods=['POST'])
@require_auth
def contest_territory(asset_id):
    """Open or join a contest on someone else's territory"""
    try:
        lat, lng = parse_location(_json_body())
        result = get_services().asset.contest_territory(asset_id, current_user_id(), lat, lng)
        return jsonify(result)
    except Exception as e:
        return handle_error(e)

@app.route('/map/orb/<orb_id>/activate', methods=['POST'])
@require_auth
def activate_orb(orb_id):
    """Activate a knowledge orb and start its quest"""
    try:
        lat, lng = parse_location(_json_body())
        session = get_services().quest.start_orb_quest(current_user_id(), orb_id, lat, lng)
        return jsonify(session), 201
    except Exception as e:
        return handle_error(e)

# ============= ADMIN ENDPOINTS =============

@app.route('/admin/territory', methods=['POST'])
@require_admin
def create_territory():
    """Place a territory on the map"""
    try:
        data = _json_body()
        validate_request_data(data, ['title'], {'radius': (int, float), 'points': int})
        lat, lng = parse_location(data)

        territory_id = get_services().asset.create_territory(
            lat, lng,
            data['title'],
            description=data.get('description', ''),
            radius=data.get('radius', 50),
            points=data.get('points', 100)
        )
        return jsonify({'id': territory_id}), 201
    except Exception as e:
        return handle_error(e)

@app.route('/admin/orb', methods=['POST'])
@require_admin
def create_knowledge_orb():
    """Place a knowledge orb on the map"""
    try:
        data = _json_body()
        validate_request_data(data, ['title', 'category'], {'radius': (int, float), 'points': int})
        lat, lng = parse_location(data)

        orb_id = get_services().asset.create_knowledge_orb(
            lat, lng,
            data['title'],
            data['category'],
            difficulty=data.get('difficulty', 'easy'),
            description=data.get('description', ''),
            radius=data.get('radius', 30),
            points=data.get('points', 50),
            expires_at=parse_timestamp(data.get('expires_at')),
            max_collections=data.get('max_collections')
        )
        return jsonify({'id': orb_id}), 201
    except Exception as e:
        return handle_error(e)

@app.route('/admin/seed', methods=['POST'])
@require_admin
def seed_database():
    """Seed database with initial data (for development)"""
    try:
        # Only allow in development environment
        if not config.is_development:
            raise AuthorizationError('Not allowed in production')

        data = _json_body()
        services = get_services()
        seeded = {
            'achievements': services.achievement.seed_achievements(),
            'team_challenges': len(services.challenge.seed_challenges()),
        }
        if data.get('location'):
            lat, lng = parse_location(data)
            seeded['knowledge_orbs'] = len(services.asset.seed_orbs_around(lat, lng))

        return jsonify({
            'message': 'Database seeded successfully',
            'seeded': seeded
        })
    except Exception as e:
        return handle_error(e)

@app.route('/admin/leaderboard/archive', methods=['POST'])
@require_admin
def archive_leaderboard():
    """Snapshot a leaderboard as the baseline for rank movement"""
    try:
        data = _json_body()
        result = get_services().leaderboard.archive_leaderboard(
            period=data.get('period', 'weekly'),
            metric=data.get('metric', 'wellness_capital')
        )
        return jsonify(result)
    except Exception as e:
        return handle_error(e)

# ============= QUEST ENDPOINTS =============

@app.route('/quests', methods=['GET'])
@require_auth
def get_quests():
    """Quest catalogue with locked flags for the caller's level"""
    try:
        quest_type = request.args.get('type')
        if quest_type and quest_type not in quest_data.QUEST_TYPES:
            raise ValidationError(f"Quest type must be one of: {', '.join(quest_data.QUEST_TYPES)}", field='type')

        quests = get_services().quest.list_quests(_current_level(), quest_type)
        return jsonify({'quests': quests})
    except Exception as e:
        return handle_error(e)

@app.route('/quest/<quest_id>', methods=['GET'])
@require_auth
def get_quest(quest_id):
    """Get a quest without its answers"""
    try:
        return jsonify(get_services().quest.get_quest(quest_id))
    except Exception as e:
        return handle_error(e)

@app.route('/quest/<quest_id>/start', methods=['POST'])
@require_auth
def start_quest(quest_id):
    """Start a timed quest session"""
    try:
        session = get_services().quest.start_quest(current_user_id(), quest_id)
        return jsonify(session), 201
    except Exception as e:
        return handle_error(e)

@app.route('/quest/session/<session_id>', methods=['GET'])
@require_auth
def get_quest_session(session_id):
    try:
        return jsonify(get_services().quest.get_session(current_user_id(), session_id))
    except Exception as e:
        return handle_error(e)

@app.route('/quest/session/<session_id>/answer', methods=['POST'])
@require_auth
def answer_question(session_id):
    """Select an option for one question"""
    try:
        data = _json_body()
        validate_request_data(data, ['question_index', 'option_index'],
                              {'question_index': int, 'option_index': int})

        session = get_services().quest.answer_question(
            current_user_id(), session_id, data['question_index'], data['option_index']
        )
        return jsonify(session)
    except Exception as e:
        return handle_error(e)

@app.route('/quest/session/<session_id>/complete', methods=['POST'])
@require_auth
def complete_quest(session_id):
    """Grade the quest and credit XP and Wellness Capital"""
    try:
        return jsonify(get_services().quest.complete_quest(current_user_id(), session_id))
    except Exception as e:
        return handle_error(e)

@app.route('/quest/session/<session_id>/abandon', methods=['POST'])
@require_auth
def abandon_quest(session_id):
    try:
        return jsonify(get_services().quest.abandon_quest(current_user_id(), session_id))
    except Exception as e:
        return handle_error(e)

@app.route('/quest/attempts', methods=['GET'])
@require_auth
def get_quest_attempts():
    """Get user's quest attempts"""
    try:
        attempts = get_services().quest.get_user_attempts(current_user_id(), request.args.get('quest_id'))
        return jsonify({'attempts': attempts})
    except Exception as e:
        return handle_error(e)

# ============= ACTIVITY ENDPOINTS =============

@app.route('/activity/start', methods=['POST'])
@require_auth
def start_activity():
    """Start an activity session"""
    try:
        data = _json_body()
        lat = lng = None
        if data.get('location') is not None:
            lat, lng = parse_location(data)

        session = get_services().activity.start_session(
            current_user_id(), data.get('session_type', 'GENERAL'), lat, lng
        )
        return jsonify(session), 201
    except Exception as e:
        return handle_error(e)

@app.route('/activity/<session_id>/location', methods=['POST'])
@require_auth
def record_location(session_id):
    """Post one GPS sample"""
    try:
        data = _json_body()
        validate_request_data(data, ['location'], {'speed': (int, float), 'accuracy': (int, float)})
        lat, lng = parse_location(data)

        result = get_services().activity.record_location(current_user_id(), session_id, {
            'lat': lat,
            'lng': lng,
            'timestamp': data.get('timestamp'),
            'speed': data.get('speed'),
            'accuracy': data.get('accuracy'),
        })
        return jsonify(result)
    except Exception as e:
        return handle_error(e)

@app.route('/activity/<session_id>/end', methods=['POST'])
@require_auth
def end_activity(session_id):
    try:
        return jsonify(get_services().activity.end_session(current_user_id(), session_id))
    except Exception as e:
        return handle_error(e)

@app.route('/activity/current', methods=['GET'])
@require_auth
def get_current_activity():
    try:
        session = get_services().activity.get_current_session(current_user_id())
        return jsonify({'session': session})
    except Exception as e:
        return handle_error(e)

@app.route('/activity/history', methods=['GET'])
@require_auth
def get_activity_history():
    try:
        sessions = get_services().activity.get_user_sessions(
            current_user_id(), _int_arg('limit', 10, maximum=100)
        )
        return jsonify({'sessions': sessions})
    except Exception as e:
        return handle_error(e)

@app.route('/activity/summary', methods=['GET'])
@require_auth
def get_activity_summary():
    """Today's totals against the daily goals"""
    try:
        return jsonify(get_services().activity.get_activity_summary(current_user_id()))
    except Exception as e:
        return handle_error(e)

# ============= TERRITORY ENDPOINTS =============

@app.route('/territories', methods=['GET'])
@require_auth
def get_territories():
    """Territories claimed by a user (the caller by default)"""
    try:
        user_id = request.args.get('user_id') or current_user_id()
        return jsonify(get_services().territory.get_user_territories(user_id))
    except Exception as e:
        return handle_error(e)

@app.route('/territories/near', methods=['GET'])
@require_auth
def get_territories_near():
    try:
        territories = get_services().territory.get_territories_near(
            _float_arg('lat'), _float_arg('lng'), _float_arg('radius', 1000.0)
        )
        return jsonify({'territories': territories, 'count': len(territories)})
    except Exception as e:
        return handle_error(e)

# ============= LEADERBOARD ENDPOINTS =============

@app.route('/leaderboard', methods=['GET'])
@require_auth
def get_leaderboard():
    """Get leaderboard data"""
    try:
        leaderboard = get_services().leaderboard.get_leaderboard(
            scope=request.args.get('scope', 'global'),       # global, friends
            period=request.args.get('period', 'all'),        # all, daily, weekly, monthly
            metric=request.args.get('metric', 'wellness_capital'),
            limit=_int_arg('limit', 50, maximum=500),
            current_user_id=current_user_id()
        )
        return jsonify(leaderboard)
    except Exception as e:
        return handle_error(e)

@app.route('/leaderboard/stats', methods=['GET'])
@require_auth
def get_leaderboard_stats():
    try:
        return jsonify(get_services().leaderboard.get_leaderboard_stats())
    except Exception as e:
        return handle_error(e)

# ============= SOCIAL ENDPOINTS =============

@app.route('/social/posts', methods=['GET'])
@require_auth
def get_posts():
    """Community feed, or one user's posts with ?user_id="""
    try:
        user_id = request.args.get('user_id')
        if user_id:
            posts = get_services().social.get_user_posts(user_id)
        else:
            posts = get_services().social.get_posts(_int_arg('limit', 20, maximum=100))
        return jsonify({'posts': posts})
    except Exception as e:
        return handle_error(e)

@app.route('/social/posts', methods=['POST'])
@require_auth
def create_post():
    try:
        data = _json_body()
        validate_request_data(data, ['content'], {'content': str})
        post_type = data.get('type') or 'general'
        # Quiz, territory and achievement posts are written by the server only
        if post_type not in USER_POST_TYPES:
            raise ValidationError(
                f"Post type must be one of: {', '.join(USER_POST_TYPES)}", field='type'
            )

        post = get_services().social.create_post(
            current_user_id(),
            data['content'],
            post_type=post_type
        )
        get_services().achievement.check_and_award(current_user_id())
        return jsonify(post), 201
    except Exception as e:
        return handle_error(e)

@app.route('/social/trending', methods=['GET'])
@require_auth
def get_trending_posts():
    try:
        return jsonify({'posts': get_services().social.get_trending_posts()})
    except Exception as e:
        return handle_error(e)

@app.route('/social/post/<post_id>/like', methods=['POST'])
@require_auth
def toggle_like(post_id):
    try:
        return jsonify(get_services().social.toggle_like(post_id, current_user_id()))
    except Exception as e:
        return handle_error(e)

@app.route('/social/post/<post_id>/comments', methods=['GET'])
@require_auth
def get_comments(post_id):
    try:
        return jsonify({'comments': get_services().social.get_comments(post_id)})
    except Exception as e:
        return handle_error(e)

@app.route('/social/post/<post_id>/comments', methods=['POST'])
@require_auth
def add_comment(post_id):
    try:
        data = _json_body()
        validate_request_data(data, ['content'], {'content': str})

        comment = get_services().social.add_comment(post_id, current_user_id(), data['content'])
        return jsonify(comment), 201
    except Exception as e:
        return handle_error(e)

@app.route('/social/post/<post_id>', methods=['DELETE'])
@require_auth
def delete_post(post_id):
    try:
        return jsonify(get_services().social.delete_post(post_id, current_user_id()))
    except Exception as e:
        return handle_error(e)

@app.route('/social/follow/<user_id>', methods=['POST'])
@require_auth
def toggle_follow(user_id):
    try:
        return jsonify(get_services().social.toggle_follow(current_user_id(), user_id))
    except Exception as e:
        return handle_error(e)

@app.route('/social/friends', methods=['GET'])
@require_auth
def get_friends():
    try:
        return jsonify({'friends': get_services().social.get_friends(current_user_id())})
    except Exception as e:
        return handle_error(e)

# ============= ACHIEVEMENT ENDPOINTS =============

@app.route('/achievements', methods=['GET'])
@require_auth
def get_achievements():
    try:
        return jsonify(get_services().achievement.get_user_achievements(current_user_id()))
    except Exception as e:
        return handle_error(e)

@app.route('/achievements/check', methods=['POST'])
@require_auth
def check_achievements():
    """Check and award newly met achievements"""
    try:
        newly_unlocked = get_services().achievement.check_and_award(current_user_id())
        return jsonify({
            'newly_unlocked': newly_unlocked,
            'count': len(newly_unlocked)
        })
    except Exception as e:
        return handle_error(e)

# ============= TEAM CHALLENGE ENDPOINTS =============

@app.route('/challenges', methods=['GET'])
@require_auth
def get_challenges():
    try:
        return jsonify(get_services().challenge.get_challenges(current_user_id()))
    except Exception as e:
        return handle_error(e)

@app.route('/challenge/<challenge_id>/join', methods=['POST'])
@require_auth
def join_challenge(challenge_id):
    try:
        return jsonify(get_services().challenge.join_challenge(current_user_id(), challenge_id))
    except Exception as e:
        return handle_error(e)

# Error handlers
@app.errorhandler(404)
def not_found(error):
    return handle_error(NotFoundError('Endpoint not found'))

@app.errorhandler(405)
def method_not_allowed(error):
    return jsonify({'error': 'Method not allowed', 'error_code': 'METHOD_NOT_ALLOWED', 'status': 'error'}), 405

@app.errorhandler(500)
def internal_error(error):
    logger.error(f"Internal server error: {str(error)}")
    return jsonify({'error': 'Internal server error', 'error_code': 'INTERNAL_ERROR', 'status': 'error'}), 500

# Firebase Cloud Function wrapper
@https_fn.on_request(
    cors=options.CorsOptions(
        cors_origins=config.ALLOWED_ORIGINS,
        cors_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
)
def api(req):
    """Main Cloud Function entry point"""
    with app.request_context(req.environ):
        return app.full_dispatch_request()

# For local development
if __name__ == '__main__':
    app.run(debug=config.DEBUG, host='0.0.0.0', port=8080)
