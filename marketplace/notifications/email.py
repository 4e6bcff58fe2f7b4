"""
Emails transactionnels: rendu Jinja2 (templates/emails/*.html) puis envoi SMTP.
- SMTP_HOST vide: l'envoi est désactivé et journalisé (dev/tests).
"""
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict

from fastapi.templating import Jinja2Templates

from marketplace import config

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(config.TEMPLATES_DIR))

def render_email(template: str, data: Dict[str, Any]) -> str:
    return templates.env.get_template(f"emails/{template}.html").render(**data)

def send_email(to: str, subject: str, template: str, data: Dict[str, Any]) -> bool:
    """
    Envoie un email HTML rendu depuis `template`.
    Retourne True si remis au serveur SMTP, False si l'envoi est désactivé.
    Les erreurs SMTP sont propagées à l'appelant.
    """
    html = render_email(template, data)
    if not config.SMTP_HOST:
        logger.info("email.disabled to=%s template=%s", to, template)
        return False

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = config.SMTP_FROM
    msg["To"] = to
    msg.set_content("Votre client mail ne supporte pas le HTML.")
    msg.add_alternative(html, subtype="html")

    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=10) as smtp:
        smtp.starttls()
        if config.SMTP_USER:
            smtp.login(config.SMTP_USER, config.SMTP_PASSWORD)
        smtp.send_message(msg)
    logger.info("email.sent to=%s template=%s", to, template)
    return True
