import os
import logging
import httpx

from .schemas import BatchStatus

logger = logging.getLogger(__name__)

class EmailService:
    def __init__(self):
        # Configurações lidas do ambiente (definidas no ECS/Terraform)
        self.base_url = os.getenv("NOTIFICATION_SERVICE_URL")
        self.api_token = os.getenv("API_SECURITY_INTERNAL_TOKEN")

        if not self.base_url:
            logger.warning("⚠️ NOTIFICATION_SERVICE_URL não definida. Emails não serão enviados.")

        if not self.api_token:
            logger.error("❌ API_SECURITY_INTERNAL_TOKEN ausente. Falha de segurança crítica.")

    async def _send_notification(self, recipient_email: str, subject: str, content: str) -> bool:
        """
        Método interno genérico para chamar o microsserviço de notificação
        """
        if not self.base_url or not self.api_token:
            logger.warning(f"⚠️ Envio abortado para {recipient_email}: Configuração de notificação incompleta.")
            return False

        url = f"{self.base_url.rstrip('/')}/api/notification/send-email"

        headers = {
            "Content-Type": "application/json",
            "x-apigateway-token": self.api_token
        }

        payload = {
            "to": recipient_email,
            "subject": subject,
            "body": content
        }

        try:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(url, json=payload, headers=headers)

            if response.status_code in [200, 201, 204]:
                logger.info(f"📧 Notificação enviada com sucesso para {recipient_email}")
                return True
            else:
                logger.error(f"❌ Falha no Notification Service: {response.status_code} - {response.text}")
                return False

        except httpx.RequestError as e:
            logger.error(f"❌ Erro de rede com Notification Service em {url}: {str(e)}")
            return False
        except Exception as e:
            logger.error(f"❌ Erro inesperado ao enviar email: {str(e)}")
            return False

    async def send_batch_completion(self, recipient_email: str, status: BatchStatus) -> bool:
        """Resumo do lote enviado quando o último job termina"""
        if status.failed == 0:
            subject = f"Lote Concluído: {status.total_files} arquivo(s) processado(s)"
        else:
            subject = f"Lote Concluído com Falhas: {status.failed} de {status.total_files}"

        body = (
            f"Olá,\n\n"
            f"O lote {status.batch_id} terminou o processamento.\n"
            f"Sucesso: {status.succeeded}\n"
            f"Falhas: {status.failed}\n\n"
            f"Os vídeos processados já estão disponíveis no seu storage.\n\n"
            f"Atenciosamente,\nVideo Processing Team"
        )
        return await self._send_notification(recipient_email, subject, body)
