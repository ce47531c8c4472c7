from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime
from enum import Enum

class BatchState(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"

class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.TIMED_OUT)

class ProcessingOptions(BaseModel):
    """Opções de processamento aplicadas a todos os arquivos de um lote.

    Aceita tanto snake_case quanto os nomes camelCase do cliente
    (``silenceThreshold``, ``removeSilence``...).
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    silence_threshold: float = Field(0.5, ge=0.0, le=1.0)
    min_duration: int = Field(0, ge=0)
    remove_silence: bool = False
    remove_static: bool = False
    auto_pacing: bool = False
    auto_crop: bool = False
    stabilize: bool = False
    color_correct: bool = False
    auto_volume: bool = False
    face_focus: bool = False

class BatchSubmissionResponse(BaseModel):
    batch_id: str
    total_files: int

class BatchStatus(BaseModel):
    batch_id: str
    total_files: int
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    remaining: int
    status: BatchState = BatchState.PROCESSING
    created_at: datetime
    completed_at: Optional[datetime] = None
