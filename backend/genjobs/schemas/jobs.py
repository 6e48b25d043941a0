from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class GenerationCreate(BaseModel):
    endpoint: str = Field(
        ...,
        min_length=1,
        description="Catalog endpoint name (text2img) or a raw API path (v6/images/text2img).",
    )
    parameters: Dict[str, Any] = Field(default_factory=dict)
    track_id: Optional[str] = Field(default=None, min_length=1)
    use_webhook: bool = True
    poll_interval: Optional[float] = Field(default=None, gt=0)
    timeout: Optional[float] = Field(default=None, gt=0)


class GenerationResponse(BaseModel):
    job_id: str
    track_id: str
    status: str


class GenerationRecord(BaseModel):
    job_id: str
    endpoint: str
    track_id: str
    status: str
    created_at: str
    updated_at: str
    webhook: Optional[str] = None
    remote_id: Optional[str] = None
    eta: Optional[float] = None
    poll_interval: Optional[float] = None
    poll_timeout: Optional[float] = None
    message: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None


class GenerationList(BaseModel):
    jobs: List[GenerationRecord]


class WebhookAck(BaseModel):
    track_id: str
    accepted: bool
    duplicate: bool = False
    outcome: Optional[str] = None
    job_id: Optional[str] = None
