import smtplib
from email.message import EmailMessage

from flask import current_app


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        current_app.logger.warning("Email to %s failed: %s", to_email, exc)
        return False, str(exc)


def send_password_reset(user, raw_token: str):
    base_url = (current_app.config.get("FRONTEND_BASE_URL") or "").rstrip("/")
    business = current_app.config.get("BUSINESS_NAME", "AquaShine")
    ttl = current_app.config.get("RESET_TOKEN_TTL_MINUTES", 60)
    body = (
        f"Hi {user.first_name or user.email},\n\n"
        f"Someone asked to reset the password for your {business} account.\n"
        f"Use this link within {ttl} minutes:\n\n"
        f"{base_url}/reset-password?token={raw_token}\n\n"
        "If this wasn't you, you can ignore this email.\n\n"
        f"Thank you,\n{business}"
    )
    return send_email(user.email, f"Reset your {business} password", body)
