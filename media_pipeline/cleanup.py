import asyncio
import logging
from concurrent.futures import Executor
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from .utils import cleanup_temp_files

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class JobArtifacts:
    """Caminhos temporários de um job, derivados do seu ID único"""
    input_path: Path
    output_path: Path

    def release(self) -> bool:
        return cleanup_temp_files(str(self.input_path), str(self.output_path))

@asynccontextmanager
async def job_artifacts(temp_dir: Union[str, Path], job_id: str,
                        input_suffix: str = ".mp4", output_suffix: str = ".mp4",
                        executor: Optional[Executor] = None) -> AsyncIterator[JobArtifacts]:
    """
    Reserva os artefatos de entrada e saída de um job e garante a remoção
    de ambos em qualquer caminho de saída (sucesso, falha, timeout ou erro
    inesperado). Falhas de remoção são logadas e nunca propagadas.

    A remoção roda no executor, fora do event loop.
    """
    temp_dir = Path(temp_dir)
    artifacts = JobArtifacts(
        input_path=temp_dir / f"{job_id}_input{input_suffix}",
        output_path=temp_dir / f"{job_id}_output{output_suffix}",
    )
    try:
        yield artifacts
    finally:
        loop = asyncio.get_running_loop()
        if await loop.run_in_executor(executor, artifacts.release):
            logger.debug(f"🧹 Artefatos temporários removidos: {job_id}")
        else:
            logger.warning(f"⚠️ Artefatos de {job_id} não foram totalmente removidos")
