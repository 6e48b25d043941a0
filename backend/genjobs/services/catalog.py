"""Endpoint catalog and per-media polling defaults.

Completion latency ranges from seconds (text, image) to many minutes (video,
3D), so poll interval and timeout are looked up by media kind instead of
being fixed on the client.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from genjobs.schemas.generation import GenerationRequest


class MediaKind(str, Enum):
    text = "text"
    image = "image"
    audio = "audio"
    video = "video"
    three_d = "three_d"
    deepfake = "deepfake"
    interior = "interior"


class PollSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    poll_interval: float = Field(..., gt=0)
    timeout: float = Field(..., gt=0)


POLL_DEFAULTS: Dict[MediaKind, PollSettings] = {
    MediaKind.text: PollSettings(poll_interval=2.0, timeout=120.0),
    MediaKind.image: PollSettings(poll_interval=5.0, timeout=300.0),
    MediaKind.interior: PollSettings(poll_interval=5.0, timeout=300.0),
    MediaKind.audio: PollSettings(poll_interval=5.0, timeout=600.0),
    MediaKind.deepfake: PollSettings(poll_interval=10.0, timeout=900.0),
    MediaKind.video: PollSettings(poll_interval=15.0, timeout=900.0),
    MediaKind.three_d: PollSettings(poll_interval=15.0, timeout=1200.0),
}


class EndpointSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    kind: MediaKind
    required: Tuple[str, ...] = ()
    fetch_path: Optional[str] = None


ENDPOINTS: Dict[str, EndpointSpec] = {
    spec.name: spec
    for spec in (
        EndpointSpec(
            name="text2img",
            path="v6/images/text2img",
            kind=MediaKind.image,
            required=("model_id", "prompt"),
        ),
        EndpointSpec(
            name="img2img",
            path="v6/images/img2img",
            kind=MediaKind.image,
            required=("model_id", "prompt", "init_image"),
        ),
        EndpointSpec(
            name="inpaint",
            path="v6/images/inpaint",
            kind=MediaKind.image,
            required=("model_id", "prompt", "init_image", "mask_image"),
        ),
        EndpointSpec(
            name="realtime_text2img",
            path="v6/realtime/text2img",
            kind=MediaKind.image,
            required=("prompt",),
        ),
        EndpointSpec(
            name="super_resolution",
            path="v6/image_editing/super_resolution",
            kind=MediaKind.image,
            required=("init_image",),
        ),
        EndpointSpec(
            name="remove_background",
            path="v6/image_editing/removebg_mask",
            kind=MediaKind.image,
            required=("image",),
        ),
        EndpointSpec(
            name="text2video",
            path="v6/video/text2video",
            kind=MediaKind.video,
            required=("model_id", "prompt"),
        ),
        EndpointSpec(
            name="img2video",
            path="v6/video/img2video",
            kind=MediaKind.video,
            required=("model_id", "init_image"),
        ),
        EndpointSpec(
            name="text_to_speech",
            path="v6/voice/text_to_audio",
            kind=MediaKind.audio,
            required=("prompt",),
        ),
        EndpointSpec(
            name="music_gen",
            path="v6/voice/music_gen",
            kind=MediaKind.audio,
            required=("prompt",),
        ),
        EndpointSpec(
            name="text_to_3d",
            path="v6/3d/text_to_3d",
            kind=MediaKind.three_d,
            required=("prompt",),
        ),
        EndpointSpec(
            name="image_to_3d",
            path="v6/3d/image_to_3d",
            kind=MediaKind.three_d,
            required=("image",),
        ),
        EndpointSpec(
            name="face_swap",
            path="v6/deepfake/single_face_swap",
            kind=MediaKind.deepfake,
            required=("init_image", "target_image"),
        ),
        EndpointSpec(
            name="video_face_swap",
            path="v6/deepfake/single_video_swap",
            kind=MediaKind.deepfake,
            required=("init_image", "init_video"),
        ),
        EndpointSpec(
            name="interior",
            path="v6/interior/make",
            kind=MediaKind.interior,
            required=("init_image", "prompt"),
        ),
        EndpointSpec(
            name="chat",
            path="v6/llm/uncensored_chat",
            kind=MediaKind.text,
            required=("messages",),
        ),
    )
}

_PATH_HINTS: Tuple[Tuple[str, MediaKind], ...] = (
    ("video", MediaKind.video),
    ("3d", MediaKind.three_d),
    ("voice", MediaKind.audio),
    ("audio", MediaKind.audio),
    ("deepfake", MediaKind.deepfake),
    ("interior", MediaKind.interior),
    ("llm", MediaKind.text),
)


def find_endpoint(endpoint: str) -> Optional[EndpointSpec]:
    spec = ENDPOINTS.get(endpoint)
    if spec is not None:
        return spec
    normalized = endpoint.strip("/")
    for candidate in ENDPOINTS.values():
        if normalized == candidate.path or normalized.endswith(f"/{candidate.path}"):
            return candidate
    return None


def kind_for_endpoint(endpoint: str) -> MediaKind:
    spec = find_endpoint(endpoint)
    if spec is not None:
        return spec.kind
    segments = endpoint.lower().strip("/").split("/")
    for hint, kind in _PATH_HINTS:
        if hint in segments:
            return kind
    return MediaKind.image


def poll_settings_for(endpoint: str) -> PollSettings:
    return POLL_DEFAULTS[kind_for_endpoint(endpoint)]


def derive_fetch_path(endpoint: str) -> str:
    """Return the poll path template for a generation endpoint.

    Generation endpoints live under a media family (``v6/images/text2img``)
    and their jobs are fetched from the same family (``v6/images/fetch/{id}``).
    """
    spec = find_endpoint(endpoint)
    if spec is not None and spec.fetch_path:
        return spec.fetch_path
    path = endpoint if "/" in endpoint or spec is None else spec.path
    parts = path.rstrip("/").split("/")
    if len(parts) < 2 or not parts[-1] or not parts[-2]:
        raise ValueError(f"cannot derive a fetch path from endpoint: {endpoint!r}")
    return "/".join(parts[:-1] + ["fetch", "{id}"])


def build_request(
    name: str,
    parameters: Mapping[str, Any],
    track_id: Optional[str] = None,
    webhook: Optional[str] = None,
) -> GenerationRequest:
    spec = ENDPOINTS.get(name)
    if spec is None:
        raise ValueError(f"unknown endpoint: {name}")
    missing = [
        field for field in spec.required if parameters.get(field) in (None, "", [])
    ]
    if missing:
        raise ValueError(f"{name} requires: {', '.join(missing)}")
    return GenerationRequest(
        endpoint=spec.path,
        parameters=dict(parameters),
        track_id=track_id,
        webhook=webhook,
    )
