"""Tests for tenant and file naming."""

import pytest

from tutorrag.core.exceptions import InvalidRequestError
from tutorrag.core.naming import (
    audio_basename,
    channel_handle,
    channel_videos_url,
    namespace_for,
    sanitize_title,
    tenant_id_for,
    unique_video_id,
)


class TestTenantNaming:
    def test_sanitized_namespace(self):
        tenant_id = tenant_id_for("My Channel!")
        assert tenant_id == "mychannel"
        assert namespace_for(tenant_id) == "tutor-chatbot-mychannel"

    @pytest.mark.parametrize(
        "identifier",
        [
            "@MyChannel",
            "MyChannel",
            "https://www.youtube.com/@MyChannel",
            "https://www.youtube.com/@MyChannel/videos",
            "https://www.youtube.com/c/MyChannel",
        ],
    )
    def test_identifier_forms_share_a_tenant(self, identifier):
        assert tenant_id_for(identifier) == "mychannel"

    def test_channel_id_url(self):
        assert channel_handle("https://www.youtube.com/channel/UC123abc") == "UC123abc"

    @pytest.mark.parametrize("identifier", ["", "@", "!!!"])
    def test_unusable_identifier(self, identifier):
        with pytest.raises(InvalidRequestError) as exc_info:
            tenant_id_for(identifier)
        assert exc_info.value.field == "channel_identifier"

    def test_custom_prefix(self):
        assert namespace_for("chan", prefix="dev-") == "dev-chan"


class TestChannelUrl:
    def test_handle_becomes_videos_url(self):
        assert channel_videos_url("@chan") == "https://www.youtube.com/@chan/videos"
        assert channel_videos_url("chan") == "https://www.youtube.com/@chan/videos"

    def test_url_kept(self):
        url = "https://www.youtube.com/@chan/videos"
        assert channel_videos_url(url) == url


class TestFileNaming:
    def test_sanitize_title(self):
        assert sanitize_title("Intro: Part 1/2?") == "Intro__Part_1_2_"

    def test_sanitize_title_truncates(self):
        assert len(sanitize_title("x" * 100)) == 40

    def test_unique_video_id_prefers_id(self):
        assert unique_video_id("abc", "https://www.youtube.com/watch?v=zzz") == "abc"

    def test_unique_video_id_from_url(self):
        assert unique_video_id(None, "https://www.youtube.com/watch?v=zzz") == "zzz"

    def test_unique_video_id_timestamp_fallback(self):
        assert unique_video_id(None, None).isdigit()

    def test_audio_basename(self):
        assert audio_basename("My Talk", "abc") == "My_Talk_abc"
