"""
Tests for community posts, likes, comments and follows
"""

import pytest

from utils.error_handler import AuthorizationError, NotFoundError, ValidationError


@pytest.fixture
def people(make_user):
    return make_user('alice', 'Alice'), make_user('bob', 'Bob')


class TestPosts:

    def test_create_post(self, services, fake_db, people):
        alice, _ = people
        post = services.social.create_post(alice, '  Walked 5 km today!  ', post_type='progress')

        assert post['content'] == 'Walked 5 km today!'
        assert post['author_display_name'] == 'Alice'
        assert post['like_count'] == 0
        assert fake_db.docs('users')[alice]['statistics']['posts_created'] == 1

    @pytest.mark.parametrize('content', ['', '   ', 'x' * 501])
    def test_invalid_content(self, services, people, content):
        with pytest.raises(ValidationError):
            services.social.create_post(people[0], content)

    def test_invalid_post_type(self, services, people):
        with pytest.raises(ValidationError):
            services.social.create_post(people[0], 'Hello', post_type='advert')

    def test_feed_is_newest_first(self, services, clock, people):
        alice, bob = people
        services.social.create_post(alice, 'first')
        clock.advance(minutes=1)
        services.social.create_post(bob, 'second')

        feed = services.social.get_posts()
        assert [p['content'] for p in feed] == ['second', 'first']
        assert [p['content'] for p in services.social.get_user_posts(alice)] == ['first']
        assert len(services.social.get_posts(limit=1)) == 1

    def test_trending_orders_by_likes_within_a_day(self, services, clock, people, make_user):
        alice, bob = people
        carol = make_user('carol')
        old = services.social.create_post(alice, 'yesterday')
        services.social.toggle_like(old['id'], bob)
        services.social.toggle_like(old['id'], carol)

        clock.advance(hours=25)
        quiet = services.social.create_post(alice, 'quiet')
        popular = services.social.create_post(bob, 'popular')
        services.social.toggle_like(popular['id'], alice)

        trending = services.social.get_trending_posts()
        assert [p['id'] for p in trending] == [popular['id'], quiet['id']]


class TestLikes:

    def test_toggle_like(self, services, fake_db, people):
        """Test liking twice removes the like and adjusts the author's count"""
        alice, bob = people
        post = services.social.create_post(alice, 'Hello')

        liked = services.social.toggle_like(post['id'], bob)
        assert liked == {'post_id': post['id'], 'liked': True, 'like_count': 1}
        assert fake_db.docs('users')[alice]['statistics']['likes_received'] == 1

        unliked = services.social.toggle_like(post['id'], bob)
        assert unliked['liked'] is False
        assert unliked['like_count'] == 0
        assert fake_db.docs('posts')[post['id']]['likes'] == []
        assert fake_db.docs('users')[alice]['statistics']['likes_received'] == 0

    def test_self_like_does_not_count(self, services, fake_db, people):
        alice, _ = people
        post = services.social.create_post(alice, 'Hello')
        services.social.toggle_like(post['id'], alice)

        assert fake_db.docs('posts')[post['id']]['like_count'] == 1
        assert fake_db.docs('users')[alice]['statistics']['likes_received'] == 0

    def test_like_missing_post(self, services, people):
        with pytest.raises(NotFoundError):
            services.social.toggle_like('nope', people[0])


class TestComments:

    def test_comments_oldest_first(self, services, fake_db, clock, people):
        alice, bob = people
        post = services.social.create_post(alice, 'Hello')
        services.social.add_comment(post['id'], bob, 'Nice')
        clock.advance(seconds=5)
        services.social.add_comment(post['id'], alice, 'Thanks')

        comments = services.social.get_comments(post['id'])
        assert [c['content'] for c in comments] == ['Nice', 'Thanks']
        assert comments[0]['author_display_name'] == 'Bob'
        assert fake_db.docs('posts')[post['id']]['comment_count'] == 2

    def test_delete_post_removes_comments(self, services, fake_db, people):
        alice, bob = people
        post = services.social.create_post(alice, 'Hello')
        services.social.add_comment(post['id'], bob, 'Nice')

        with pytest.raises(AuthorizationError):
            services.social.delete_post(post['id'], bob)

        result = services.social.delete_post(post['id'], alice)
        assert result['deleted_comments'] == 1
        assert fake_db.docs('posts') == {}
        assert fake_db.docs('comments') == {}


class TestFollows:

    def test_follow_and_friends(self, services, fake_db, people):
        alice, bob = people
        assert services.social.toggle_follow(alice, bob)['following'] is True
        assert fake_db.docs('users')[bob]['followers'] == [alice]

        friends = services.social.get_friends(alice)
        assert [f['id'] for f in friends] == [bob]
        assert friends[0]['mutual'] is False

        services.social.toggle_follow(bob, alice)
        assert services.social.get_friends(alice)[0]['mutual'] is True

    def test_unfollow(self, services, fake_db, people):
        alice, bob = people
        services.social.toggle_follow(alice, bob)
        assert services.social.toggle_follow(alice, bob)['following'] is False
        assert fake_db.docs('users')[alice]['following'] == []

    def test_cannot_follow_self(self, services, people):
        with pytest.raises(ValidationError):
            services.social.toggle_follow(people[0], people[0])

    def test_follow_missing_user(self, services, people):
        with pytest.raises(NotFoundError):
            services.social.toggle_follow(people[0], 'ghost')
