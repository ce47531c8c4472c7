from fastapi import FastAPI, HTTPException, UploadFile, File, Form
from fastapi.responses import JSONResponse
from typing import List, Optional
from contextlib import asynccontextmanager
import logging

from .batch_processor import BatchProcessor
from .worker_pool import WorkerPool
from .s3_service import S3Service
from .email_service import EmailService
from .errors import InvalidInput, IOFailure, NotFound
from .models import MediaFile
from .config import LOG_LEVEL, MAX_WORKERS, S3_BUCKET_NAME, print_config, validate_config

# Configure logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

SERVICE_NAME = "Media Batch Processing Service"
SERVICE_VERSION = "1.0.0"

# Dicionário global para manter as instâncias dos serviços
services = {}

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gerenciador de ciclo de vida da aplicação.
    O pool é criado uma única vez aqui e injetado no processador.
    """
    try:
        print_config()
        validate_config()

        # 1. Pool com capacidade fixa
        pool = WorkerPool(capacity=MAX_WORKERS)
        pool.start()

        # 2. Serviços opcionais
        s3_service = S3Service() if S3_BUCKET_NAME else None
        email_service = EmailService()

        # 3. Processador com as dependências injetadas
        processor = BatchProcessor(pool, s3_service=s3_service, email_service=email_service)

        services["pool"] = pool
        services["s3"] = s3_service
        services["email"] = email_service
        services["processor"] = processor

        logger.info("✅ Serviços inicializados e dependências injetadas")

        yield # A aplicação roda aqui

    except Exception as e:
        logger.error(f"❌ Erro fatal na inicialização: {e}")
        raise e

    finally:
        if "processor" in services:
            await services["processor"].shutdown()
        services.clear()

        logger.info("🛑 Aplicação finalizada")

app = FastAPI(
    title=SERVICE_NAME,
    version=SERVICE_VERSION,
    lifespan=lifespan
)

def _get_processor() -> BatchProcessor:
    processor = services.get("processor")
    if not processor:
        raise HTTPException(500, "Processor indisponível")
    return processor

@app.get("/")
async def root():
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "storage": "s3" if services.get("s3") else "local",
        "endpoints": {
            "POST /batches": "Envia um lote de vídeos para processamento",
            "GET /batches": "Lista os lotes recebidos",
            "GET /batches/{batch_id}": "Status agregado do lote",
            "GET /batches/{batch_id}/jobs": "Estado de cada job do lote",
            "GET /health": "Status do serviço",
            "GET /": "Esta página"
        }
    }

@app.get("/health")
async def health_check():
    processor = services.get("processor")
    return {
        "status": "healthy" if processor else "unhealthy",
        "queue": processor.get_queue_status() if processor else None
    }

@app.post("/batches")
async def submit_batch(
    files: List[UploadFile] = File(...),
    silence_threshold: float = Form(0.5),
    min_duration: int = Form(0),
    remove_silence: bool = Form(False),
    remove_static: bool = Form(False),
    auto_pacing: bool = Form(False),
    auto_crop: bool = Form(False),
    stabilize: bool = Form(False),
    color_correct: bool = Form(False),
    auto_volume: bool = Form(False),
    face_focus: bool = Form(False),
    timeout_seconds: Optional[float] = Form(None),
    email: Optional[str] = Form(None)
):
    processor = _get_processor()

    media = [MediaFile(filename=f.filename or "video.mp4", data=await f.read()) for f in files]
    options = {
        "silence_threshold": silence_threshold,
        "min_duration": min_duration,
        "remove_silence": remove_silence,
        "remove_static": remove_static,
        "auto_pacing": auto_pacing,
        "auto_crop": auto_crop,
        "stabilize": stabilize,
        "color_correct": color_correct,
        "auto_volume": auto_volume,
        "face_focus": face_focus,
    }

    try:
        ticket = processor.submit_batch(media, options, timeout_seconds=timeout_seconds, notify_email=email)
    except InvalidInput as e:
        raise HTTPException(400, str(e))
    except IOFailure as e:
        raise HTTPException(500, str(e))

    return JSONResponse(
        content=ticket.as_response().model_dump(),
        status_code=202
    )

@app.get("/batches")
async def list_batches():
    processor = _get_processor()
    batches = processor.list_batches()
    return {"count": len(batches), "batches": [b.model_dump(mode="json") for b in batches]}

@app.get("/batches/{batch_id}")
async def get_batch_status(batch_id: str):
    processor = _get_processor()
    try:
        return processor.get_status(batch_id).model_dump(mode="json")
    except NotFound as e:
        raise HTTPException(404, str(e))

@app.get("/batches/{batch_id}/jobs")
async def list_batch_jobs(batch_id: str):
    processor = _get_processor()
    try:
        jobs = processor.list_jobs(batch_id)
    except NotFound as e:
        raise HTTPException(404, str(e))
    return {"batch_id": batch_id, "jobs": [job.model_dump(mode="json") for job in jobs]}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
