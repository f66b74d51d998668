"""
Seed content for development and first deployment
Knowledge orbs placed around a point, achievements and team challenges
"""

# (lat offset, lng offset, orb fields)
ORB_TEMPLATES = [
    (0.0002, 0.0003, {
        'name': 'ULIP Myths Quiz',
        'description': 'Bust common myths about Unit Linked Insurance Plans',
        'category': 'wealth',
        'difficulty': 'medium',
        'points': 75,
        'is_active': True,
    }),
    (-0.0002, -0.0001, {
        'name': 'Cardio Benefits',
        'description': 'How cardio keeps your heart healthy',
        'category': 'health',
        'difficulty': 'easy',
        'points': 50,
        'is_active': True,
    }),
    (0.0006, 0.0007, {
        'name': 'Policy Basics',
        'description': 'Premiums, deductibles and sum assured explained',
        'category': 'insurance',
        'difficulty': 'hard',
        'points': 100,
        'is_active': False,
    }),
    (-0.0003, 0.0004, {
        'name': 'Running Technique',
        'description': 'Form, cadence and warm-ups',
        'category': 'health',
        'difficulty': 'medium',
        'points': 65,
        'is_active': True,
    }),
    (0.0001, -0.0005, {
        'name': 'Investment 101',
        'description': 'Diversification, compounding and risk',
        'category': 'wealth',
        'difficulty': 'easy',
        'points': 45,
        'is_active': True,
    }),
]


def _achievement(achievement_id, title, description, category, tier, points, requirement_type, target):
    return {
        'id': achievement_id,
        'title': title,
        'description': description,
        'category': category,
        'tier': tier,
        'points': points,
        'requirements': {
            'type': requirement_type,
            'target': target,
            'timeframe': 'ALL_TIME',
        },
    }


ACHIEVEMENTS = [
    _achievement('first_steps', 'First Steps', 'Take your first 100 steps',
                 'DISTANCE', 'BRONZE', 10, 'STEPS', 100),
    _achievement('walker', 'Daily Walker', 'Walk 5,000 steps',
                 'DISTANCE', 'BRONZE', 25, 'STEPS', 5000),
    _achievement('step_master', 'Step Master', 'Reach 10,000 steps',
                 'DISTANCE', 'SILVER', 50, 'STEPS', 10000),
    _achievement('distance_runner', 'Distance Runner', 'Cover 10 km',
                 'DISTANCE', 'SILVER', 75, 'DISTANCE', 10),
    _achievement('calorie_burner', 'Calorie Burner', 'Burn 500 calories',
                 'DISTANCE', 'BRONZE', 40, 'CALORIES', 500),
    _achievement('active_hour', 'Active Hour', 'Spend 60 minutes in activity sessions',
                 'DISTANCE', 'BRONZE', 30, 'ACTIVE_TIME', 60),
    _achievement('consistency_champion', 'Consistency Champion', 'Maintain a 7-day activity streak',
                 'STREAK', 'GOLD', 100, 'STREAK', 7),
    _achievement('first_territory', 'Land Grab', 'Claim your first territory',
                 'TERRITORY', 'BRONZE', 25, 'TERRITORIES', 1),
    _achievement('territory_baron', 'Territory Baron', 'Claim 10 territories',
                 'TERRITORY', 'GOLD', 150, 'TERRITORIES', 10),
    _achievement('orb_seeker', 'Orb Seeker', 'Collect 5 knowledge orbs',
                 'KNOWLEDGE', 'SILVER', 50, 'KNOWLEDGE_ORBS', 5),
    _achievement('quiz_whiz', 'Quiz Whiz', 'Complete 10 knowledge quests',
                 'KNOWLEDGE', 'GOLD', 120, 'QUESTS', 10),
    _achievement('storyteller', 'Storyteller', 'Share 5 community posts',
                 'SOCIAL', 'BRONZE', 20, 'POSTS', 5),
    _achievement('crowd_favourite', 'Crowd Favourite', 'Receive 25 likes on your posts',
                 'SOCIAL', 'SILVER', 60, 'LIKES', 25),
]


# (days from now the challenge starts, duration in days, challenge fields)
CHALLENGE_TEMPLATES = [
    (0, 7, {
        'title': '10K Steps Marathon',
        'description': 'Walk 100,000 steps together as a team this week',
        'type': 'steps',
        'target': 100000,
        'max_participants': 5,
        'rewards': {'xp': 500, 'wellness_capital': 1000, 'badge': 'Team Walker'},
    }),
    (0, 14, {
        'title': 'Knowledge Quest Sprint',
        'description': 'Complete 25 knowledge quests as a team',
        'type': 'quests',
        'target': 25,
        'max_participants': 4,
        'rewards': {'xp': 750, 'wellness_capital': 1500, 'badge': 'Quiz Masters'},
    }),
    (3, 10, {
        'title': 'Territory Conquest',
        'description': 'Claim 20 territories together',
        'type': 'territories',
        'target': 20,
        'max_participants': 3,
        'rewards': {'xp': 600, 'wellness_capital': 800},
    }),
]
