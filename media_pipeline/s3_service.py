import boto3
import logging
from .config import S3_BUCKET_NAME, AWS_REGION

logger = logging.getLogger(__name__)

class S3Service:
    def __init__(self, bucket_name: str = S3_BUCKET_NAME):
        self.s3_client = boto3.client('s3', region_name=AWS_REGION)
        self.bucket_name = bucket_name

        logger.info(f"✅ S3 Service inicializado")
        logger.info(f"   Bucket: {self.bucket_name}")
        logger.info(f"   Usando credenciais AWS do ambiente/IAM Role")

    def upload_artifact(self, local_path: str, s3_key: str) -> str:
        """
        📤 Publica o vídeo processado no bucket.
        Retorna o handle s3://bucket/key usado na consulta do lote.
        """
        try:
            logger.info(f"📤 Iniciando upload para S3: {s3_key}")

            self.s3_client.upload_file(
                Filename=local_path,
                Bucket=self.bucket_name,
                Key=s3_key,
                ExtraArgs={'ContentType': 'video/mp4'}
            )
            logger.info(f"✅ Upload concluído com sucesso: s3://{self.bucket_name}/{s3_key}")
            return f"s3://{self.bucket_name}/{s3_key}"
        except Exception as e:
            logger.error(f"❌ Erro crítico no upload para o S3: {e}")
            raise
