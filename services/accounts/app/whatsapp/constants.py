import enum
import re

# E.164 with mandatory leading "+", e.g. +919876543210
PHONE_NUMBER_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")

WHATSAPP_CODE_EXPIRE_SECONDS: int = 300   # 5 minutes
WHATSAPP_CODE_MAX_ATTEMPTS: int = 5


class MessageType(str, enum.Enum):
    JOB_ALERT = "job_alert"
    APPLICATION_UPDATE = "application_update"
    INTERVIEW_REMINDER = "interview_reminder"
    PAYMENT_NOTIFICATION = "payment_notification"
    WEEKLY_DIGEST = "weekly_digest"
    URGENT_ALERT = "urgent_alert"
    GENERAL = "general"


# Body templates per message type; {message} is the caller's text.
MESSAGE_TEMPLATES: dict[MessageType, str] = {
    MessageType.JOB_ALERT: "🚨 *New Job Alert!*\n\n{message}\n\n💼 Apply now on {app_name}!",
    MessageType.APPLICATION_UPDATE: (
        "📋 *Application Update*\n\n{message}\n\n✅ Check your dashboard for details."
    ),
    MessageType.INTERVIEW_REMINDER: "⏰ *Interview Reminder*\n\n{message}\n\n🤝 Good luck!",
    MessageType.PAYMENT_NOTIFICATION: (
        "💰 *Payment Notification*\n\n{message}\n\n💳 Check your earnings dashboard."
    ),
    MessageType.WEEKLY_DIGEST: (
        "📊 *Weekly Digest*\n\n{message}\n\n📱 Open {app_name} for more details."
    ),
    MessageType.URGENT_ALERT: "🔴 *URGENT ALERT*\n\n{message}\n\n⚡ Immediate action required!",
    MessageType.GENERAL: "📢 *{app_name} Notification*\n\n{message}",
}
