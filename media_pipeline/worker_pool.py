"""
Pool de execução com capacidade fixa.

`submit` nunca bloqueia: o trabalho entra numa fila interna (sem limite) e só
começa quando um dos K workers está livre. K é um limite rígido de jobs
executando ao mesmo tempo no processo.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from .config import MAX_WORKERS

logger = logging.getLogger(__name__)

WorkFactory = Callable[[], Awaitable[Any]]

class WorkerPool:
    def __init__(self, capacity: int = MAX_WORKERS, name: str = "pool"):
        if capacity < 1:
            raise ValueError(f"Capacidade do pool deve ser >= 1: {capacity}")

        self.capacity = capacity
        self.name = name
        self.running = 0
        self.peak_running = 0

        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self._closed = False

    @property
    def queue_size(self) -> int:
        return self._queue.qsize() if self._queue else 0

    @property
    def is_running(self) -> bool:
        return bool(self._workers) and not self._closed

    @property
    def is_closed(self) -> bool:
        return self._closed

    def start(self):
        """Cria os K workers no event loop corrente"""
        if self._workers:
            return
        self._queue = asyncio.Queue()
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"{self.name}-worker-{i}")
            for i in range(self.capacity)
        ]
        logger.info(f"👷 Pool '{self.name}' iniciado com {self.capacity} workers")

    def submit(self, factory: WorkFactory) -> asyncio.Future:
        """
        Enfileira uma unidade de trabalho.

        `factory` é chamada apenas quando um slot fica livre e deve devolver
        uma corrotina. O Future retornado resolve com o resultado dela.
        """
        if self._closed:
            raise RuntimeError(f"Pool '{self.name}' já foi finalizado")
        if not self._workers:
            self.start()

        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((factory, future))
        return future

    async def join(self):
        """Aguarda a fila esvaziar e todos os trabalhos em andamento terminarem"""
        if self._queue:
            await self._queue.join()

    async def shutdown(self, wait: bool = True):
        if self._closed:
            return
        self._closed = True

        if self._queue and not wait:
            while not self._queue.empty():
                _, future = self._queue.get_nowait()
                future.cancel()
                self._queue.task_done()

        await self.join()

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info(f"🛑 Pool '{self.name}' finalizado (pico de {self.peak_running} jobs simultâneos)")

    async def _worker(self, worker_id: int):
        while True:
            item: Tuple[WorkFactory, asyncio.Future] = await self._queue.get()
            factory, future = item
            try:
                if future.cancelled():
                    continue

                self.running += 1
                self.peak_running = max(self.peak_running, self.running)
                try:
                    result = await factory()
                except asyncio.CancelledError:
                    future.cancel()
                    raise
                except Exception as e:
                    logger.error(f"❌ Worker {worker_id}: trabalho falhou: {e}")
                    if not future.done():
                        future.set_exception(e)
                else:
                    if not future.done():
                        future.set_result(result)
                finally:
                    self.running -= 1
            finally:
                self._queue.task_done()
