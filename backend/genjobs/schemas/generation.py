from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(..., min_length=1)
    parameters: Dict[str, Any] = Field(default_factory=dict)
    track_id: Optional[str] = None
    webhook: Optional[str] = None

    def body(self, api_key: Optional[str] = None) -> Dict[str, Any]:
        payload = dict(self.parameters)
        if api_key:
            payload.setdefault("key", api_key)
        if self.track_id is not None:
            payload["track_id"] = self.track_id
        if self.webhook is not None:
            payload["webhook"] = self.webhook
        return payload


class JobHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    eta: Optional[float] = None
    fetch_url: Optional[str] = None


class Success(BaseModel):
    kind: Literal["success"] = "success"
    outputs: List[str] = Field(..., min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def output(self) -> str:
        return self.outputs[0]


class Failure(BaseModel):
    kind: Literal["failure"] = "failure"
    message: str
    remote_code: Optional[Union[int, str]] = None


class Pending(BaseModel):
    kind: Literal["pending"] = "pending"
    handle: JobHandle


class TransportError(BaseModel):
    kind: Literal["transport_error"] = "transport_error"
    message: str
    attempts: int = 1
    status_code: Optional[int] = None


class UnexpectedResponse(BaseModel):
    kind: Literal["unexpected_response"] = "unexpected_response"
    message: str
    raw: Any = None


class EmptyOutput(BaseModel):
    kind: Literal["empty_output"] = "empty_output"
    message: str = "success response carried no output"
    raw: Any = None


class MissingJobId(BaseModel):
    kind: Literal["missing_job_id"] = "missing_job_id"
    message: str = "processing response carried no job id"
    raw: Any = None


class Timeout(BaseModel):
    kind: Literal["timeout"] = "timeout"
    handle: JobHandle
    elapsed: float
    polls: int


class Cancelled(BaseModel):
    kind: Literal["cancelled"] = "cancelled"
    handle: Optional[JobHandle] = None
    polls: int = 0


class TokenMismatch(BaseModel):
    kind: Literal["token_mismatch"] = "token_mismatch"
    expected: str
    received: Optional[str] = None


GenerationResult = Annotated[
    Union[
        Success,
        Failure,
        Pending,
        TransportError,
        UnexpectedResponse,
        EmptyOutput,
        MissingJobId,
        Timeout,
        Cancelled,
        TokenMismatch,
    ],
    Field(discriminator="kind"),
]
