import os

# AWS Configuration
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME", "")

# Notification Service
NOTIFICATION_SERVICE_URL = os.getenv("NOTIFICATION_SERVICE_URL", "")

# Application Settings
TEMP_DIR = os.getenv("TEMP_DIR", "/app/tmp")
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "/app/outputs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
FFMPEG_PATH = os.getenv("FFMPEG_PATH", "ffmpeg")

# Pipeline Settings
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))
MAX_BATCH_FILES = int(os.getenv("MAX_BATCH_FILES", "100"))
JOB_TIMEOUT_SECONDS = float(os.getenv("JOB_TIMEOUT_SECONDS", "300"))
KILL_GRACE_SECONDS = float(os.getenv("KILL_GRACE_SECONDS", "5"))

def validate_config():
    """Valida configurações mínimas"""
    errors = []

    if MAX_WORKERS < 1:
        errors.append(f"MAX_WORKERS deve ser >= 1: {MAX_WORKERS}")

    if MAX_BATCH_FILES < 1:
        errors.append(f"MAX_BATCH_FILES deve ser >= 1: {MAX_BATCH_FILES}")

    if JOB_TIMEOUT_SECONDS <= 0:
        errors.append(f"JOB_TIMEOUT_SECONDS deve ser positivo: {JOB_TIMEOUT_SECONDS}")

    if KILL_GRACE_SECONDS <= 0:
        errors.append(f"KILL_GRACE_SECONDS deve ser positivo: {KILL_GRACE_SECONDS}")

    if not FFMPEG_PATH:
        errors.append("FFMPEG_PATH não configurado")

    if errors:
        raise ValueError(" | ".join(errors))

def print_config():
    """Imprime configurações (útil para debug)"""
    print("=" * 50)
    print("CONFIGURAÇÕES DO SISTEMA")
    print("=" * 50)
    print(f"🎞️ FFmpeg: {FFMPEG_PATH}")
    print(f"👷 Workers: {MAX_WORKERS}")
    print(f"⏱️ Timeout por job: {JOB_TIMEOUT_SECONDS}s")
    print(f"📦 Máximo por lote: {MAX_BATCH_FILES} arquivos")

    if S3_BUCKET_NAME:
        # Mascarar credenciais nos logs
        aws_key = os.getenv("AWS_ACCESS_KEY_ID", "Não configurada")
        masked_key = aws_key[:4] + "***" + aws_key[-4:] if len(aws_key) > 8 else "***"

        print(f"📦 S3 Bucket: {S3_BUCKET_NAME}")
        print(f"🔑 AWS Key: {masked_key}")
    else:
        print(f"📦 S3 Bucket: Não configurado (somente disco local)")

    print(f"📧 Notification URL: {NOTIFICATION_SERVICE_URL or 'Não configurada'}")
    print(f"📁 Temp Dir: {TEMP_DIR}")
    print(f"📁 Output Dir: {OUTPUT_DIR}")
    print(f"🌍 Environment: {os.getenv('ENVIRONMENT', 'production')}")
    print("=" * 50)
