from jelly.infrastructure.email.email_service import EmailService
from jelly.infrastructure.email.templates import TEMPLATES, EmailTemplate

__all__ = ["TEMPLATES", "EmailService", "EmailTemplate"]
