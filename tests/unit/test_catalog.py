"""Tests for genjobs.services.catalog."""

from __future__ import annotations

import pytest

from genjobs.services.catalog import (
    ENDPOINTS,
    MediaKind,
    POLL_DEFAULTS,
    build_request,
    derive_fetch_path,
    find_endpoint,
    kind_for_endpoint,
    poll_settings_for,
)


class TestFetchPath:
    @pytest.mark.parametrize("endpoint,expected", [
        ("v6/images/text2img", "v6/images/fetch/{id}"),
        ("v6/video/text2video", "v6/video/fetch/{id}"),
        ("/v6/3d/text_to_3d/", "/v6/3d/fetch/{id}"),
        ("text2img", "v6/images/fetch/{id}"),
        ("https://api.test/api/v6/voice/music_gen", "https://api.test/api/v6/voice/fetch/{id}"),
    ])
    def test_derived_from_family(self, endpoint, expected):
        assert derive_fetch_path(endpoint) == expected

    @pytest.mark.parametrize("endpoint", ["nonsense", "/text2img_v2", "v6//"])
    def test_underivable(self, endpoint):
        with pytest.raises(ValueError):
            derive_fetch_path(endpoint)


class TestKinds:
    def test_catalog_entries_have_presets(self):
        for spec in ENDPOINTS.values():
            assert spec.kind in POLL_DEFAULTS

    @pytest.mark.parametrize("endpoint,kind", [
        ("text2video", MediaKind.video),
        ("v6/3d/image_to_3d", MediaKind.three_d),
        ("v6/voice/some_new_voice_model", MediaKind.audio),
        ("v6/llm/new_chat", MediaKind.text),
        ("v7/unknown/thing", MediaKind.image),
    ])
    def test_kind_lookup(self, endpoint, kind):
        assert kind_for_endpoint(endpoint) == kind

    def test_slow_media_waits_longer(self):
        """Video and 3D presets allow more time than images."""
        image = poll_settings_for("text2img")
        video = poll_settings_for("text2video")
        three_d = poll_settings_for("text_to_3d")
        assert video.timeout > image.timeout
        assert three_d.timeout >= video.timeout
        assert video.poll_interval > image.poll_interval

    def test_find_by_path(self):
        assert find_endpoint("v6/images/img2img").name == "img2img"
        assert find_endpoint("v9/nothing") is None


class TestBuildRequest:
    def test_builds_catalog_request(self):
        request = build_request(
            "text2img", {"model_id": "flux", "prompt": "a cat"}, track_id="trk_1"
        )
        assert request.endpoint == "v6/images/text2img"
        assert request.track_id == "trk_1"
        assert request.parameters == {"model_id": "flux", "prompt": "a cat"}

    def test_missing_required_fields(self):
        with pytest.raises(ValueError, match="init_image"):
            build_request("img2img", {"model_id": "flux", "prompt": "a cat"})

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="unknown endpoint"):
            build_request("text2sculpture", {})
