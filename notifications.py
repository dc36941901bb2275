"""
Payment-completion fan-out.

A completed checkout is announced to the shop owner by email (Resend) and
in a Discord channel. Each sink is optional, independent and best effort:
failures are logged and never retried or raised to the webhook caller.
"""
import html
import logging
from datetime import datetime, timezone

import requests

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
EMAIL_FROM = "Happy & Healthy Pets <ventas@resend.dev>"
SHOP_NAME = "Happy & Healthy Pets"
EMBED_COLOR = 0x22C55E
REQUEST_TIMEOUT = 10


def format_amount(amount_total) -> str:
    """Minor units to the '$250.50 MXN' form used in every message."""
    return f"${(amount_total or 0) / 100:.2f} MXN"


def email_subject(event) -> str:
    name = event.metadata.get("customer_name") or "Cliente"
    return f"🎉 ¡Nueva Venta! {format_amount(event.amount_total)} - {name}"


def email_html(event) -> str:
    rows = [
        ("👤 Nombre", event.metadata.get("customer_name") or "Cliente"),
        ("📧 Email", event.customer_email or "No especificado"),
        ("📱 Teléfono", event.metadata.get("customer_phone") or "No especificado"),
        ("📍 Dirección", event.metadata.get("customer_address") or "No especificada"),
    ]
    table = "".join(
        f'<tr><td style="padding: 10px 0;"><strong>{label}:</strong></td>'
        f'<td style="padding: 10px 0;">{html.escape(str(value))}</td></tr>'
        for label, value in rows
    )
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f"<h1>🎉 ¡Nueva Venta!</h1><p><strong>{format_amount(event.amount_total)}</strong></p>"
        f'<h2>Detalles del Cliente</h2><table style="width: 100%;">{table}</table>'
        f"<p><strong>Session ID:</strong> {html.escape(str(event.session_id))}</p>"
        "</div>"
    )


def send_email_notification(event, settings) -> bool:
    """Email the owner. Without a Resend key the message is only logged."""
    subject = email_subject(event)

    if not settings.resend_api_key:
        logger.info(
            f"📧 Email notification (configure RESEND_API_KEY to send): "
            f"to={settings.notification_email} subject={subject}"
        )
        return False

    try:
        response = requests.post(
            RESEND_API_URL,
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            json={
                "from": EMAIL_FROM,
                "to": settings.notification_email,
                "subject": subject,
                "html": email_html(event),
            },
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"❌ Failed to send email notification: {e}")
        return False

    if not response.ok:
        logger.error(f"❌ Email send failed: {response.status_code} {response.text}")
        return False

    logger.info(f"✅ Email notification sent to: {settings.notification_email}")
    return True


def send_discord_notification(event, settings) -> bool:
    embed = {
        "title": f"🎉 ¡Nueva Venta en {SHOP_NAME}!",
        "color": EMBED_COLOR,
        "fields": [
            {"name": "💵 Monto", "value": format_amount(event.amount_total), "inline": True},
            {"name": "📧 Email", "value": event.customer_email or "N/A", "inline": True},
            {"name": "👤 Cliente", "value": event.metadata.get("customer_name") or "N/A", "inline": False},
        ],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        response = requests.post(
            settings.discord_webhook_url,
            json={"embeds": [embed]},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"❌ Failed to send Discord notification: {e}")
        return False

    if not response.ok:
        logger.error(f"❌ Discord notification failed: {response.status_code} {response.text}")
        return False

    logger.info("✅ Discord notification sent!")
    return True


def handle_successful_payment(event, settings) -> dict:
    """
    Log the sale and dispatch it to every configured sink.

    Returns a mapping of sink name to delivery result, only for sinks that
    were attempted. An unexpected error in one sink does not stop the next.
    """
    logger.info(
        f"💰 New sale: session={event.session_id} amount={format_amount(event.amount_total)} "
        f"email={event.customer_email} customer={event.metadata.get('customer_name')}"
    )

    sinks = []
    if settings.notification_email:
        sinks.append(("email", send_email_notification))
    if settings.discord_webhook_url:
        sinks.append(("discord", send_discord_notification))

    results = {}
    for name, sink in sinks:
        try:
            results[name] = sink(event, settings)
        except Exception:
            logger.exception(f"Notification sink {name} crashed")
            results[name] = False
    return results
