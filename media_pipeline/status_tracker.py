import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from .errors import NotFound
from .models import Job
from .schemas import BatchState, BatchStatus, JobState

logger = logging.getLogger(__name__)

class BatchStatusTracker:
    """
    Agregado em memória do estado de cada lote e dos seus jobs.

    Toda leitura e escrita passa pelo mesmo lock: um snapshot nunca observa
    uma atualização pela metade, e cada job conta exatamente uma vez.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._batches: Dict[str, BatchStatus] = {}
        self._jobs: Dict[str, Dict[str, Job]] = {}

    def create_batch(self, batch_id: str, total_files: int) -> BatchStatus:
        if total_files < 1:
            raise ValueError(f"Lote sem arquivos: {batch_id}")

        with self._lock:
            if batch_id in self._batches:
                raise ValueError(f"Lote já registrado: {batch_id}")
            status = BatchStatus(
                batch_id=batch_id,
                total_files=total_files,
                remaining=total_files,
                created_at=datetime.now(),
            )
            self._batches[batch_id] = status
            self._jobs[batch_id] = {}
            return status.model_copy()

    def discard_batch(self, batch_id: str):
        """Remove um lote cujo despacho falhou antes de qualquer job iniciar"""
        with self._lock:
            self._require_batch(batch_id)
            del self._batches[batch_id]
            del self._jobs[batch_id]

    def register_job(self, job: Job):
        with self._lock:
            jobs = self._require_jobs(job.batch_id)
            if job.job_id in jobs:
                raise ValueError(f"Job duplicado no lote {job.batch_id}: {job.job_id}")
            jobs[job.job_id] = job

    def mark_running(self, batch_id: str, job_id: str, input_path: Optional[str] = None) -> Job:
        with self._lock:
            job = self._require_job(batch_id, job_id)
            job.advance(JobState.RUNNING)
            job.input_path = input_path
            return job.model_copy()

    def record_result(self, batch_id: str, job_id: str, state: JobState,
                      output_handle: Optional[str] = None,
                      error_kind: Optional[str] = None,
                      error_message: Optional[str] = None) -> BatchStatus:
        """Registra o estado terminal de um job e atualiza os contadores do lote"""
        if not state.is_terminal:
            raise ValueError(f"Estado não terminal: {state.value}")

        with self._lock:
            batch = self._require_batch(batch_id)
            job = self._require_job(batch_id, job_id)

            if job.state.is_terminal:
                logger.warning(f"⚠️ Resultado duplicado ignorado para o job {job_id} ({job.state.value})")
                return batch.model_copy()

            job.advance(state)
            job.output_handle = output_handle if state == JobState.SUCCEEDED else None
            job.error_kind = error_kind
            job.error_message = error_message

            batch.processed += 1
            if state == JobState.SUCCEEDED:
                batch.succeeded += 1
            else:
                batch.failed += 1
            batch.remaining -= 1

            if batch.remaining == 0:
                batch.status = BatchState.COMPLETED
                batch.completed_at = datetime.now()
                logger.info(
                    f"🏁 Lote {batch_id} concluído: {batch.succeeded} sucesso(s), {batch.failed} falha(s)"
                )

            return batch.model_copy()

    def snapshot(self, batch_id: str) -> BatchStatus:
        with self._lock:
            return self._require_batch(batch_id).model_copy()

    def jobs(self, batch_id: str) -> List[Job]:
        with self._lock:
            jobs = self._require_jobs(batch_id)
            return sorted((job.model_copy() for job in jobs.values()), key=lambda j: j.index)

    def list_batches(self) -> List[BatchStatus]:
        with self._lock:
            batches = [batch.model_copy() for batch in self._batches.values()]
        return sorted(batches, key=lambda b: b.created_at, reverse=True)

    def _require_batch(self, batch_id: str) -> BatchStatus:
        batch = self._batches.get(batch_id)
        if batch is None:
            raise NotFound(f"Lote não encontrado: {batch_id}")
        return batch

    def _require_jobs(self, batch_id: str) -> Dict[str, Job]:
        self._require_batch(batch_id)
        return self._jobs[batch_id]

    def _require_job(self, batch_id: str, job_id: str) -> Job:
        job = self._require_jobs(batch_id).get(job_id)
        if job is None:
            raise NotFound(f"Job {job_id} não encontrado no lote {batch_id}")
        return job
