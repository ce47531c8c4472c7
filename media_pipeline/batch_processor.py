import asyncio
import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from .cleanup import job_artifacts
from .config import (
    FFMPEG_PATH,
    JOB_TIMEOUT_SECONDS,
    LOG_LEVEL,
    MAX_BATCH_FILES,
    OUTPUT_DIR,
    TEMP_DIR,
)
from .email_service import EmailService
from .errors import InvalidInput, IOFailure, ProcessingError, ProcessTimeout
from .filter_graph import build_command_spec
from .models import Job, MediaFile
from .s3_service import S3Service
from .schemas import BatchStatus, BatchSubmissionResponse, JobState, ProcessingOptions
from .status_tracker import BatchStatusTracker
from .supervisor import ProcessSupervisor
from .utils import cleanup_temp_files, generate_unique_id, safe_stem, safe_suffix
from .worker_pool import WorkerPool

# Configure logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

class BatchTicket:
    """Handle devolvido na submissão: ID do lote + sinal de conclusão"""

    def __init__(self, batch_id: str, total_files: int, completion: asyncio.Future):
        self.batch_id = batch_id
        self.total_files = total_files
        self.completion = completion

    @property
    def done(self) -> bool:
        return self.completion.done()

    async def wait(self, timeout: Optional[float] = None) -> BatchStatus:
        """Aguarda todos os jobs chegarem a um estado terminal"""
        return await asyncio.wait_for(asyncio.shield(self.completion), timeout=timeout)

    def as_response(self) -> BatchSubmissionResponse:
        return BatchSubmissionResponse(batch_id=self.batch_id, total_files=self.total_files)

class BatchProcessor:
    def __init__(self, pool: WorkerPool,
                 tracker: Optional[BatchStatusTracker] = None,
                 supervisor: Optional[ProcessSupervisor] = None,
                 s3_service: Optional[S3Service] = None,
                 email_service: Optional[EmailService] = None,
                 temp_dir: str = TEMP_DIR,
                 output_dir: str = OUTPUT_DIR,
                 ffmpeg_path: str = FFMPEG_PATH,
                 job_timeout: float = JOB_TIMEOUT_SECONDS,
                 max_batch_files: int = MAX_BATCH_FILES):

        self.pool = pool
        self.tracker = tracker or BatchStatusTracker()
        self.supervisor = supervisor or ProcessSupervisor()
        self.s3_service = s3_service
        self.email_service = email_service

        self.temp_dir = Path(temp_dir)
        self.output_dir = Path(output_dir)
        self.ffmpeg_path = ffmpeg_path
        self.job_timeout = job_timeout
        self.max_batch_files = max_batch_files

        # I/O bloqueante (gravar entradas, mover/publicar saídas) fora do event loop
        self.executor = ThreadPoolExecutor(max_workers=pool.capacity)

        logger.info(f"🎬 BatchProcessor inicializado")
        logger.info(f"👷 Capacidade: {pool.capacity} jobs simultâneos")
        logger.info(f"📦 S3: {s3_service.bucket_name if s3_service else 'desativado'}")

    def submit_batch(self, files: Sequence[MediaFile],
                     options: Union[ProcessingOptions, Mapping[str, Any], None] = None,
                     timeout_seconds: Optional[float] = None,
                     notify_email: Optional[str] = None) -> BatchTicket:
        """
        Valida e despacha um lote. Retorna imediatamente, antes de qualquer
        job terminar; o progresso é observado pelo tracker ou pelo ticket.

        Erros de intake (InvalidInput, IOFailure) abortam o lote inteiro
        antes da criação de qualquer job.
        """
        if not files:
            raise InvalidInput("O lote precisa de pelo menos um arquivo")
        if len(files) > self.max_batch_files:
            raise InvalidInput(f"Lote com {len(files)} arquivos excede o limite de {self.max_batch_files}")
        for f in files:
            if not isinstance(f, MediaFile):
                raise InvalidInput("Itens do lote devem ser MediaFile")
            if not isinstance(f.filename, str) or not f.filename:
                raise InvalidInput(f"Nome de arquivo inválido: {f.filename!r}")
            if not isinstance(f.data, (bytes, bytearray)):
                raise InvalidInput(f"Conteúdo de {f.filename} deve ser bytes")

        options = self._coerce_options(options)

        timeout = self.job_timeout if timeout_seconds is None else timeout_seconds
        if timeout <= 0:
            raise InvalidInput(f"Timeout deve ser positivo: {timeout}")

        if self.pool.is_closed:
            raise IOFailure(f"Pool '{self.pool.name}' já foi finalizado, lote recusado")

        try:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"❌ Não foi possível criar o diretório temporário {self.temp_dir}: {e}")
            raise IOFailure(f"Não foi possível criar o diretório temporário: {e}") from e

        # Todos os jobs são montados antes de o lote existir no tracker
        batch_id = generate_unique_id()
        try:
            jobs = [
                Job(batch_id=batch_id, index=index, filename=media.filename, options=options)
                for index, media in enumerate(files)
            ]
        except ValidationError as e:
            raise InvalidInput(f"Arquivo inválido no lote: {e}") from e

        self.tracker.create_batch(batch_id, len(jobs))
        for job in jobs:
            self.tracker.register_job(job)

        futures = []
        try:
            for job, media in zip(jobs, files):
                futures.append(self.pool.submit(partial(self._run_job, job, media.data, timeout)))
        except RuntimeError as e:
            for future in futures:
                future.cancel()
            self.tracker.discard_batch(batch_id)
            logger.error(f"❌ Falha ao despachar o lote {batch_id}: {e}")
            raise IOFailure(f"Não foi possível despachar o lote: {e}") from e

        logger.info(f"📥 Lote {batch_id} recebido: {len(files)} arquivo(s), timeout={timeout}s")

        completion = asyncio.ensure_future(self._await_batch(batch_id, jobs, futures, notify_email))
        return BatchTicket(batch_id, len(files), completion)

    def get_status(self, batch_id: str) -> BatchStatus:
        return self.tracker.snapshot(batch_id)

    def list_jobs(self, batch_id: str) -> List[Job]:
        return self.tracker.jobs(batch_id)

    def list_batches(self) -> List[BatchStatus]:
        return self.tracker.list_batches()

    def get_queue_status(self) -> Dict[str, Any]:
        return {
            "is_running": self.pool.is_running,
            "capacity": self.pool.capacity,
            "running": self.pool.running,
            "queue_size": self.pool.queue_size,
        }

    async def shutdown(self, wait: bool = True):
        await self.pool.shutdown(wait=wait)
        self.executor.shutdown(wait=False)

    @staticmethod
    def _coerce_options(options) -> ProcessingOptions:
        if options is None:
            return ProcessingOptions()
        if isinstance(options, ProcessingOptions):
            return options
        try:
            return ProcessingOptions.model_validate(options)
        except ValidationError as e:
            raise InvalidInput(f"Opções de processamento inválidas: {e}") from e

    async def _run_job(self, job: Job, data: bytes, timeout: float) -> JobState:
        """Ciclo de vida completo de um job, executado dentro de um slot do pool"""
        label = f"{job.batch_id[:8]}#{job.index}"
        state = JobState.FAILED
        output_handle = None
        error_kind = None
        error_message = None

        try:
            async with job_artifacts(self.temp_dir, job.job_id, safe_suffix(job.filename),
                                     executor=self.executor) as artifacts:
                self.tracker.mark_running(job.batch_id, job.job_id, str(artifacts.input_path))
                logger.info(f"🚀 [{label}] Iniciando {job.filename}")

                await self._materialize(artifacts.input_path, data)

                spec = build_command_spec(job.options)
                args = spec.to_args(self.ffmpeg_path, artifacts.input_path, artifacts.output_path)
                await self.supervisor.run(args, artifacts.output_path, timeout=timeout, label=label)

                output_handle = await self._publish(job, artifacts.output_path)
                state = JobState.SUCCEEDED

        except ProcessTimeout as e:
            state, error_kind, error_message = JobState.TIMED_OUT, e.kind, str(e)
        except ProcessingError as e:
            error_kind, error_message = e.kind, str(e)
        except Exception as e:
            logger.exception(f"❌ [{label}] Erro inesperado")
            error_kind, error_message = type(e).__name__, str(e)

        # Artefatos temporários já removidos: só agora o estado terminal fica visível
        self.tracker.record_result(
            job.batch_id, job.job_id, state,
            output_handle=output_handle,
            error_kind=error_kind,
            error_message=error_message,
        )

        if state == JobState.SUCCEEDED:
            logger.info(f"✅ [{label}] Job concluído: {output_handle}")
        else:
            logger.error(f"❌ [{label}] Job terminou como {state.value}: {error_kind} - {error_message}")
        return state

    async def _materialize(self, input_path: Path, data: bytes):
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self.executor, input_path.write_bytes, data)
        except OSError as e:
            raise IOFailure(f"Não foi possível gravar a entrada {input_path.name}: {e}") from e

    async def _publish(self, job: Job, output_path: Path) -> str:
        """Move a saída para o diretório do lote e, se configurado, envia ao S3"""
        loop = asyncio.get_running_loop()
        destination = self.output_dir / job.batch_id / f"{job.index:03d}_{safe_stem(job.filename)}.mp4"

        try:
            await loop.run_in_executor(self.executor, _move_file, output_path, destination)
        except OSError as e:
            raise IOFailure(f"Não foi possível publicar a saída: {e}") from e

        if not self.s3_service:
            return str(destination)

        s3_key = f"processed/{job.batch_id}/{destination.name}"
        try:
            return await loop.run_in_executor(
                self.executor,
                self.s3_service.upload_artifact,
                str(destination),
                s3_key,
            )
        except Exception as e:
            cleanup_temp_files(str(destination))
            raise IOFailure(f"Falha no upload para o S3: {e}") from e

    async def _await_batch(self, batch_id: str, jobs: List[Job], futures: List[asyncio.Future],
                           notify_email: Optional[str]) -> BatchStatus:
        await asyncio.gather(*futures, return_exceptions=True)

        # Jobs descartados no shutdown sem espera ainda precisam de um estado terminal
        for job, future in zip(jobs, futures):
            if future.cancelled():
                self.tracker.record_result(
                    batch_id, job.job_id, JobState.FAILED,
                    error_kind="Cancelled",
                    error_message="Job cancelado no encerramento do pool",
                )

        status = self.tracker.snapshot(batch_id)

        if notify_email and self.email_service:
            await self.email_service.send_batch_completion(notify_email, status)

        return status

def _move_file(source: Path, destination: Path):
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(source), str(destination))
