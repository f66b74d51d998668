"""
Social Service for WellQuest
Handles community posts, likes, comments and the follow graph
"""

from datetime import datetime, timedelta, timezone
import logging

from firebase_admin import firestore

from utils.error_handler import (
    WellQuestError, ValidationError, AuthorizationError, NotFoundError, DatabaseError
)

logger = logging.getLogger(__name__)

POST_TYPES = ('general', 'achievement', 'progress', 'milestone', 'quiz_completion', 'territory_claim')
USER_POST_TYPES = ('general', 'progress', 'milestone')
MAX_CONTENT_LENGTH = 500
DEFAULT_POST_LIMIT = 20
TRENDING_WINDOW = timedelta(hours=24)
TRENDING_LIMIT = 10


def _clean_content(content):
    content = (content or '').strip()
    if not content:
        raise ValidationError("Content cannot be empty", field='content')
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(f"Content cannot exceed {MAX_CONTENT_LENGTH} characters", field='content')
    return content


class SocialService:
    def __init__(self, db, user_service, clock=None):
        self.db = db
        self.posts_ref = db.collection('posts')
        self.comments_ref = db.collection('comments')
        self.users_ref = db.collection('users')
        self.user_service = user_service
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def create_post(self, user_id, content, post_type='general', quest_title=None, score=None, xp_earned=None):
        """
        Publish a community post
        """
        try:
            content = _clean_content(content)
            if post_type not in POST_TYPES:
                raise ValidationError(f"Post type must be one of: {', '.join(POST_TYPES)}", field='type')

            author = self.user_service.get_user(user_id)
            now = self.clock()

            post_data = {
                'user_id': user_id,
                'author_display_name': author.get('display_name', 'Explorer'),
                'author_avatar': author.get('avatar', ''),
                'content': content,
                'type': post_type,
                'quest_title': quest_title,
                'score': score,
                'xp_earned': xp_earned,
                'likes': [],
                'like_count': 0,
                'comment_count': 0,
                'is_public': True,
                'created_at': now,
                'updated_at': now,
            }

            _, doc_ref = self.posts_ref.add(post_data)
            self.users_ref.document(user_id).update({
                'statistics.posts_created': firestore.Increment(1),
            })

            logger.info(f"User {user_id} created {post_type} post {doc_ref.id}")
            return {'id': doc_ref.id, **post_data}

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error creating post: {str(e)}")
            raise DatabaseError(f"Failed to create post: {str(e)}")

    def get_posts(self, limit=DEFAULT_POST_LIMIT):
        """
        Newest community posts
        """
        try:
            posts_query = self.posts_ref.order_by('created_at', direction='DESCENDING').limit(int(limit))
            return [self._post(doc) for doc in posts_query.stream()]

        except Exception as e:
            logger.error(f"Error getting posts: {str(e)}")
            raise DatabaseError(f"Failed to get posts: {str(e)}")

    def get_user_posts(self, user_id):
        try:
            posts_query = (
                self.posts_ref
                .where('user_id', '==', user_id)
                .order_by('created_at', direction='DESCENDING')
            )
            return [self._post(doc) for doc in posts_query.stream()]

        except Exception as e:
            logger.error(f"Error getting user posts: {str(e)}")
            raise DatabaseError(f"Failed to get user posts: {str(e)}")

    def get_trending_posts(self):
        """
        Most liked posts of the last 24 hours
        """
        try:
            since = self.clock() - TRENDING_WINDOW
            posts = [
                self._post(doc)
                for doc in self.posts_ref.where('created_at', '>=', since).stream()
            ]
            posts.sort(key=lambda p: (len(p.get('likes', [])), p['created_at']), reverse=True)
            return posts[:TRENDING_LIMIT]

        except Exception as e:
            logger.error(f"Error getting trending posts: {str(e)}")
            raise DatabaseError(f"Failed to get trending posts: {str(e)}")

    def toggle_like(self, post_id, user_id):
        """
        Like a post, or remove the like if already given
        """
        try:
            post = self._get_post(post_id)
            post_ref = self.posts_ref.document(post_id)
            liked = user_id not in post.get('likes', [])

            if liked:
                post_ref.update({
                    'likes': firestore.ArrayUnion([user_id]),
                    'like_count': firestore.Increment(1),
                    'updated_at': self.clock(),
                })
            else:
                post_ref.update({
                    'likes': firestore.ArrayRemove([user_id]),
                    'like_count': firestore.Increment(-1),
                    'updated_at': self.clock(),
                })

            # Authors do not earn likes from themselves
            if post['user_id'] != user_id:
                self.users_ref.document(post['user_id']).update({
                    'statistics.likes_received': firestore.Increment(1 if liked else -1),
                })

            like_count = len(post.get('likes', [])) + (1 if liked else -1)
            return {'post_id': post_id, 'liked': liked, 'like_count': like_count}

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error toggling like: {str(e)}")
            raise DatabaseError(f"Failed to toggle like: {str(e)}")

    def add_comment(self, post_id, user_id, content):
        try:
            content = _clean_content(content)
            self._get_post(post_id)
            author = self.user_service.get_user(user_id)
            now = self.clock()

            comment_data = {
                'post_id': post_id,
                'user_id': user_id,
                'author_display_name': author.get('display_name', 'Explorer'),
                'content': content,
                'created_at': now,
            }
            _, doc_ref = self.comments_ref.add(comment_data)

            self.posts_ref.document(post_id).update({
                'comment_count': firestore.Increment(1),
                'updated_at': now,
            })

            return {'id': doc_ref.id, **comment_data}

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error adding comment: {str(e)}")
            raise DatabaseError(f"Failed to add comment: {str(e)}")

    def get_comments(self, post_id):
        """
        Comments on a post, oldest first
        """
        try:
            self._get_post(post_id)
            comments_query = (
                self.comments_ref
                .where('post_id', '==', post_id)
                .order_by('created_at')
            )
            comments = []
            for doc in comments_query.stream():
                comment = doc.to_dict()
                comment['id'] = doc.id
                comments.append(comment)
            return comments

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error getting comments: {str(e)}")
            raise DatabaseError(f"Failed to get comments: {str(e)}")

    def delete_post(self, post_id, user_id):
        """
        Delete a post and its comments; authors only
        """
        try:
            post = self._get_post(post_id)
            if post['user_id'] != user_id:
                raise AuthorizationError("Unauthorized to delete this post")

            self.posts_ref.document(post_id).delete()
            deleted_comments = 0
            for doc in self.comments_ref.where('post_id', '==', post_id).stream():
                doc.reference.delete()
                deleted_comments += 1

            logger.info(f"User {user_id} deleted post {post_id} with {deleted_comments} comments")
            return {'success': True, 'post_id': post_id, 'deleted_comments': deleted_comments}

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error deleting post: {str(e)}")
            raise DatabaseError(f"Failed to delete post: {str(e)}")

    def toggle_follow(self, current_user_id, target_user_id):
        """
        Follow a user, or unfollow if already following
        """
        try:
            if current_user_id == target_user_id:
                raise ValidationError("You cannot follow yourself")

            current_user = self.user_service.get_user(current_user_id)
            self.user_service.get_user(target_user_id)

            following = target_user_id not in current_user.get('following', [])
            transform = firestore.ArrayUnion if following else firestore.ArrayRemove

            self.users_ref.document(current_user_id).update({
                'following': transform([target_user_id]),
            })
            self.users_ref.document(target_user_id).update({
                'followers': transform([current_user_id]),
            })

            logger.info(f"User {current_user_id} {'followed' if following else 'unfollowed'} {target_user_id}")
            return {'user_id': target_user_id, 'following': following}

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error toggling follow: {str(e)}")
            raise DatabaseError(f"Failed to toggle follow: {str(e)}")

    def get_friends(self, user_id):
        """
        Users this user follows, with their public stats
        """
        try:
            user = self.user_service.get_user(user_id)
            followers = set(user.get('followers', []))

            friends = []
            for friend_id in user.get('following', []):
                try:
                    friend = self.user_service.get_public_profile(friend_id)
                except NotFoundError:
                    continue
                friend['mutual'] = friend_id in followers
                friends.append(friend)

            friends.sort(key=lambda f: f['xp'], reverse=True)
            return friends

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error getting friends: {str(e)}")
            raise DatabaseError(f"Failed to get friends: {str(e)}")

    def _get_post(self, post_id):
        post_doc = self.posts_ref.document(post_id).get()
        if not post_doc.exists:
            raise NotFoundError("Post not found")
        return post_doc.to_dict()

    def _post(self, doc):
        post = doc.to_dict()
        post['id'] = doc.id
        return post
