import os, smtplib, logging, socket, re
from email.message import EmailMessage
from contextlib import closing

logger = logging.getLogger("match_mail")

SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_FROM = os.getenv("SMTP_FROM") or SMTP_USER
APP_NAME = os.getenv("APP_NAME", "AlumniAccel")
SMTP_DISABLE = os.getenv("SMTP_DISABLE", "0") == "1"      # log instead of sending
SMTP_STRICT = os.getenv("SMTP_STRICT", "0") == "1"        # any failure => False

_TAG_RE = re.compile(r"<[^>]+>")


def _smtp_config_complete() -> bool:
    return all([SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, SMTP_FROM])


def smtp_diagnostics() -> dict:
    """
    Returns a quick diagnostic dict (does not attempt authentication unless host resolves).
    """
    diag = {
        "host": SMTP_HOST,
        "port": SMTP_PORT,
        "user_present": bool(SMTP_USER),
        "password_present": bool(SMTP_PASSWORD),
        "from": SMTP_FROM,
        "resolves": None,
        "can_connect": None,
        "disabled": SMTP_DISABLE,
        "strict": SMTP_STRICT,
        "complete_config": _smtp_config_complete()
    }
    if not SMTP_HOST:
        return diag
    try:
        socket.gethostbyname(SMTP_HOST)
        diag["resolves"] = True
    except socket.gaierror:
        diag["resolves"] = False
        return diag
    try:
        with closing(socket.create_connection((SMTP_HOST, SMTP_PORT), timeout=5)):
            diag["can_connect"] = True
    except OSError:
        diag["can_connect"] = False
    return diag


def html_to_text(html: str) -> str:
    lines = [line.strip() for line in _TAG_RE.sub("", html).splitlines()]
    return "\n".join(line for line in lines if line)


def send_email(to_email: str, subject: str, html: str) -> bool:
    """
    Send an HTML email (with a plain text fallback part) via SMTP.
    Returns True if we consider it 'sent'.
    Honors:
      - SMTP_DISABLE=1 : always succeed, log subject (dev)
      - SMTP_STRICT=1  : any failure => return False
    """
    if not to_email:
        logger.warning("Skipping email with no recipient: %s", subject)
        return False

    if SMTP_DISABLE:
        logger.warning("[SMTP_DISABLED] Email for %s -> %s", to_email, subject)
        return True

    if not _smtp_config_complete():
        logger.warning("[SMTP_FALLBACK] Incomplete SMTP config; email=%s subject=%s", to_email, subject)
        return not SMTP_STRICT

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = SMTP_FROM
    msg["To"] = to_email
    msg.set_content(html_to_text(html))
    msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=15) as smtp:
            smtp.starttls()
            smtp.login(SMTP_USER, SMTP_PASSWORD)
            smtp.send_message(msg)
        logger.info("Sent email to %s", to_email)
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed sending email to %s: %s", to_email, e)
        return not SMTP_STRICT


def render_template(template: str, variables: dict) -> str:
    """Replace {{name}} placeholders with values from `variables`."""
    out = template
    for key, value in variables.items():
        out = out.replace("{{" + key + "}}", "" if value is None else str(value))
    return out


def send_batch(recipients: list[dict], subject: str, html_template: str) -> dict:
    """
    Send a templated email to each recipient ({"email": ..., "data": {...}}).
    Returns counts plus per-recipient results.
    """
    results = []
    sent = failed = 0
    for recipient in recipients:
        data = recipient.get("data", {})
        ok = send_email(
            recipient["email"],
            render_template(subject, data),
            render_template(html_template, data),
        )
        results.append({"email": recipient["email"], "success": ok})
        if ok:
            sent += 1
        else:
            failed += 1
    return {"success": sent, "failed": failed, "results": results}
