"""
Supervisão do processo externo (FFmpeg) de um job.

Inicia o processo com uma lista de argumentos, drena o stderr em paralelo
para que o processo nunca bloqueie com o pipe cheio, aplica o prazo e
encerra à força quando ele expira.
"""

import asyncio
import logging
import re
import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Deque, List, Optional, Sequence, Union

from .config import JOB_TIMEOUT_SECONDS, KILL_GRACE_SECONDS
from .errors import (
    MissingOutputArtifact,
    ProcessNonZeroExit,
    ProcessSpawnFailure,
    ProcessTimeout,
)

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(rb'[\r\n]')

@dataclass
class ProcessResult:
    returncode: int
    duration: float
    output_size: int
    stderr_tail: List[str] = field(default_factory=list)

class ProcessSupervisor:
    def __init__(self, kill_grace_seconds: float = KILL_GRACE_SECONDS, tail_lines: int = 20,
                 chunk_size: int = 4096):
        self.kill_grace_seconds = kill_grace_seconds
        self.tail_lines = tail_lines
        self.chunk_size = chunk_size

    async def run(self, args: Sequence[str], output_path: Union[str, Path],
                  timeout: Optional[float] = None, label: str = "") -> ProcessResult:
        """
        Executa o comando e valida o artefato de saída.

        Levanta ProcessSpawnFailure, ProcessTimeout, ProcessNonZeroExit ou
        MissingOutputArtifact. Em qualquer saída anormal o processo é morto
        antes de a exceção propagar.
        """
        timeout = JOB_TIMEOUT_SECONDS if timeout is None else timeout
        label = label or Path(args[0]).name
        started = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"❌ [{label}] Falha ao iniciar {args[0]}: {e}")
            raise ProcessSpawnFailure(f"Não foi possível iniciar {args[0]}: {e}") from e

        logger.info(f"▶️ [{label}] Processo iniciado (pid={process.pid}, timeout={timeout}s)")

        tail: Deque[str] = deque(maxlen=self.tail_lines)
        drain_task = asyncio.create_task(self._drain(process.stderr, tail, label))
        timed_out = False

        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            timed_out = True
        except BaseException:
            await self._terminate(process, label)
            await self._cancel(drain_task)
            raise

        if timed_out:
            await self._terminate(process, label)
            await self._cancel(drain_task)
            logger.warning(f"⏰ [{label}] Prazo de {timeout}s expirado, processo encerrado")
            raise ProcessTimeout(f"Processo excedeu o prazo de {timeout}s")

        # Processo já saiu: o drain termina no EOF, salvo se um neto segurar o pipe
        try:
            await asyncio.wait_for(asyncio.shield(drain_task), timeout=self.kill_grace_seconds)
        except asyncio.TimeoutError:
            await self._cancel(drain_task)
        except Exception as e:
            logger.warning(f"⚠️ [{label}] Leitura do stderr falhou: {e}")

        duration = time.monotonic() - started
        returncode = process.returncode

        if returncode != 0:
            details = " | ".join(list(tail)[-3:])
            logger.error(f"❌ [{label}] Código de saída {returncode} após {duration:.1f}s")
            raise ProcessNonZeroExit(returncode, details)

        output = Path(output_path)
        output_size = output.stat().st_size if output.is_file() else 0
        if output_size == 0:
            logger.error(f"❌ [{label}] Saída ausente ou vazia: {output}")
            raise MissingOutputArtifact(f"Artefato de saída ausente ou vazio: {output.name}")

        logger.info(f"✅ [{label}] Concluído em {duration:.1f}s ({output_size} bytes)")
        return ProcessResult(
            returncode=returncode,
            duration=duration,
            output_size=output_size,
            stderr_tail=list(tail),
        )

    async def _drain(self, stream: asyncio.StreamReader, tail: Deque[str], label: str):
        """Lê o stderr em blocos; o FFmpeg usa \\r nas linhas de progresso"""
        pending = b""
        while True:
            chunk = await stream.read(self.chunk_size)
            if not chunk:
                break
            *lines, pending = _LINE_BREAK.split(pending + chunk)
            for raw in lines:
                self._emit(raw, tail, label)
        self._emit(pending, tail, label)

    @staticmethod
    def _emit(raw: bytes, tail: Deque[str], label: str):
        line = raw.decode("utf-8", errors="replace").strip()
        if line:
            tail.append(line)
            logger.debug(f"[{label}] {line}")

    async def _terminate(self, process: asyncio.subprocess.Process, label: str):
        try:
            process.kill()
        except ProcessLookupError:
            pass
        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
        except asyncio.TimeoutError:
            logger.error(f"❌ [{label}] Processo {process.pid} não respondeu ao kill")

    @staticmethod
    async def _cancel(task: asyncio.Task):
        """Cancela o drain; uma falha de leitura do stderr nunca substitui o erro do job"""
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"⚠️ Leitura do stderr falhou: {e}")
