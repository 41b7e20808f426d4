"""Tests for form validation helpers and hashtag extraction."""
import pytest

from community.core.exceptions import FormValidationError
from community.core.validation import require_valid, validate_form
from community.modules.posts.schemas.post import PostForm
from community.modules.posts.services.hashtags import excerpt, extract_hashtags, remove_hashtags


class TestValidateForm:

    def test_valid(self):
        result = validate_form(PostForm, {"title": "  Hello  ", "content": "World"})
        assert result.ok
        assert result.record.title == "Hello"
        assert result.record.external_url is None

    def test_invalid_lists_fields_in_order(self):
        result = validate_form(PostForm, {})
        assert not result.ok
        assert [v.field for v in result.violations] == ["title", "content"]
        assert result.first.message == "Title is required"

    def test_title_boundary(self):
        assert validate_form(PostForm, {"title": "x" * 200, "content": "c"}).ok
        result = validate_form(PostForm, {"title": "x" * 201, "content": "c"})
        assert result.first.message == "Title must be at most 200 characters"

    def test_require_valid_raises(self):
        with pytest.raises(FormValidationError) as exc_info:
            require_valid(PostForm, {"title": "t", "content": ""})
        assert exc_info.value.first_message == "Content is required"


class TestHashtags:

    def test_extract_with_accents(self):
        assert extract_hashtags("Fête #café et #été2024, puis #x") == ["#café", "#été2024", "#x"]

    def test_no_tags(self):
        assert extract_hashtags("plain text") == []
        assert extract_hashtags(None) == []

    def test_remove(self):
        assert remove_hashtags("Meet up #today") == "Meet up"

    def test_excerpt_truncates(self):
        text = "a" * 200
        assert excerpt(text) == "a" * 150 + "..."
        assert excerpt("short #tag") == "short"
