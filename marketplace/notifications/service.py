"""
Façade notifications/email consommée par le pipeline de commande.
- send(recipient, template, data): email transactionnel
- notify(receiver_id, title, message, link): notification in-app
"""
from typing import Any, Dict, Optional

from marketplace import config
from . import email
from . import repository

SUBJECTS = {
    "order-confirmation": "Your {platform} Order Confirmation",
}

def send(recipient_email: str, template: str, data: Dict[str, Any]) -> bool:
    subject = SUBJECTS.get(template, "{platform}").format(platform=config.PLATFORM_NAME)
    return email.send_email(recipient_email, subject, template, data)

def notify(receiver_id: str, title: str, message: str, link: str,
           creator_id: str = "system") -> Optional[Dict[str, Any]]:
    return repository.insert_notification(
        title=title,
        message=message,
        creator_id=creator_id,
        receiver_id=receiver_id,
        redirect_link=link,
    )
