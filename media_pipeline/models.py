from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .schemas import JobState, ProcessingOptions
from .utils import generate_unique_id

# pending -> running -> {succeeded | failed | timed_out}
# pending -> failed apenas para jobs cancelados antes de iniciar
_ALLOWED_TRANSITIONS = {
    JobState.PENDING: {JobState.RUNNING, JobState.FAILED},
    JobState.RUNNING: {JobState.SUCCEEDED, JobState.FAILED, JobState.TIMED_OUT},
}

@dataclass(frozen=True)
class MediaFile:
    """Arquivo recebido no lote (nome original + conteúdo em memória)"""
    filename: str
    data: bytes

class Job(BaseModel):
    job_id: str = Field(default_factory=generate_unique_id)
    batch_id: str
    index: int
    filename: str
    options: ProcessingOptions
    state: JobState = JobState.PENDING
    input_path: Optional[str] = None
    output_handle: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    def advance(self, state: JobState) -> None:
        """Avança o estado do job, rejeitando qualquer regressão"""
        if state not in _ALLOWED_TRANSITIONS.get(self.state, set()):
            raise ValueError(f"Transição inválida para o job {self.job_id}: {self.state.value} -> {state.value}")

        self.state = state
        if state == JobState.RUNNING:
            self.started_at = datetime.now()
        elif state.is_terminal:
            self.ended_at = datetime.now()
