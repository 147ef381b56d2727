"""
Unit tests for models.post module.

Tests:
- MediaItem validation and derived detection
- Post construction and validation
- effective_media() precedence across the four entity blocks
- full_text and to_db_params()
"""

import pytest

from feedbrotr.models import Account, Entities, ExtendedPost, MediaItem, Post, PostDbParams


def media(media_id: int, source: int = 0) -> MediaItem:
    return MediaItem(id=media_id, media_url=f"https://m/{media_id}.jpg", source_status_id=source)


@pytest.fixture
def author() -> Account:
    return Account(id=7, screen_name="author")


class TestMediaItem:
    def test_defaults(self):
        item = MediaItem(id=1, media_url="https://m/1.jpg")
        assert item.source_status_id == 0
        assert item.type == "photo"
        assert item.is_derived is False

    def test_derived(self):
        assert media(1, source=99).is_derived is True

    def test_negative_id_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            MediaItem(id=-1, media_url="https://m/1.jpg")

    def test_null_byte_url_rejected(self):
        with pytest.raises(ValueError, match="null bytes"):
            MediaItem(id=1, media_url="https://m/\x00")


class TestPostValidation:
    def test_minimal(self, author):
        post = Post(id=1, user=author)
        assert post.text == ""
        assert post.created_at is None
        assert post.retweeted_status is None
        assert post.quoted_status is None
        assert post.effective_media() == ()

    def test_user_must_be_account(self):
        with pytest.raises(TypeError, match="user must be an Account"):
            Post(id=1, user={"id": 1})  # type: ignore[arg-type]

    def test_bool_id_rejected(self, author):
        with pytest.raises(TypeError, match="id must be an int"):
            Post(id=True, user=author)

    def test_embedded_must_be_post(self, author):
        with pytest.raises(TypeError, match="retweeted_status"):
            Post(id=1, user=author, retweeted_status="2")  # type: ignore[arg-type]

    def test_frozen(self, author):
        post = Post(id=1, user=author)
        with pytest.raises(AttributeError):
            post.id = 2  # type: ignore[misc]

    def test_raw_excluded_from_equality(self, author):
        assert Post(id=1, user=author, raw='{"a":1}') == Post(id=1, user=author, raw='{"b":2}')


class TestEffectiveMedia:
    def test_entities_only(self, author):
        post = Post(id=1, user=author, entities=Entities(media=(media(1),)))
        assert [m.id for m in post.effective_media()] == [1]

    def test_extended_entities_win_over_entities(self, author):
        post = Post(
            id=1,
            user=author,
            entities=Entities(media=(media(1),)),
            extended_entities=Entities(media=(media(1), media(2), media(3))),
        )
        assert [m.id for m in post.effective_media()] == [1, 2, 3]

    def test_extended_tweet_entities_win(self, author):
        post = Post(
            id=1,
            user=author,
            entities=Entities(media=(media(1),)),
            extended_entities=Entities(media=(media(2),)),
            extended_tweet=ExtendedPost(entities=Entities(media=(media(3),))),
        )
        assert [m.id for m in post.effective_media()] == [3]

    def test_extended_tweet_extended_entities_win_over_all(self, author):
        post = Post(
            id=1,
            user=author,
            entities=Entities(media=(media(1),)),
            extended_entities=Entities(media=(media(2),)),
            extended_tweet=ExtendedPost(
                entities=Entities(media=(media(3),)),
                extended_entities=Entities(media=(media(4), media(5))),
            ),
        )
        assert [m.id for m in post.effective_media()] == [4, 5]

    def test_present_empty_block_replaces_previous(self, author):
        post = Post(
            id=1,
            user=author,
            entities=Entities(media=(media(1),)),
            extended_entities=Entities(),
        )
        assert post.effective_media() == ()

    def test_extended_tweet_without_entities_keeps_previous(self, author):
        post = Post(
            id=1,
            user=author,
            extended_entities=Entities(media=(media(2),)),
            extended_tweet=ExtendedPost(full_text="long"),
        )
        assert [m.id for m in post.effective_media()] == [2]


class TestFullTextAndDbParams:
    def test_full_text_prefers_extended(self, author):
        post = Post(id=1, user=author, text="short", extended_tweet=ExtendedPost(full_text="long"))
        assert post.full_text == "long"

    def test_full_text_falls_back_to_text(self, author):
        post = Post(id=1, user=author, text="short", extended_tweet=ExtendedPost())
        assert post.full_text == "short"

    def test_to_db_params(self, author):
        original = Post(id=2, user=Account(id=8, screen_name="orig"))
        quoted = Post(id=3, user=Account(id=9, screen_name="quoted"))
        post = Post(
            id=1,
            user=author,
            text="hello",
            created_at=1539202764,
            retweeted_status=original,
            quoted_status=quoted,
            raw='{"id":1}',
        )

        params = post.to_db_params()

        assert isinstance(params, PostDbParams)
        assert params == PostDbParams(
            id=1,
            user_id=7,
            text="hello",
            created_at=1539202764,
            retweeted_id=2,
            quoted_id=3,
            raw='{"id":1}',
        )

    def test_to_db_params_without_embeds(self, author):
        params = Post(id=1, user=author).to_db_params()
        assert params.retweeted_id is None
        assert params.quoted_id is None
