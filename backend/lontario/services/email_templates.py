from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from html import escape

from lontario.core.clock import as_utc
from lontario.core.config import settings


class EmailType(str, PyEnum):
    interview_scheduled = "interview_scheduled"
    interview_reminder_24h = "interview_reminder_24h"
    interview_reminder_1h = "interview_reminder_1h"
    interview_ready = "interview_ready"
    interview_completed = "interview_completed"
    interview_rescheduled = "interview_rescheduled"
    interview_cancelled = "interview_cancelled"


@dataclass
class EmailTemplateData:
    candidate_name: str
    job_title: str
    interview_link: str = ""
    scheduled_at: datetime | None = None
    duration_minutes: int = 30
    company_name: str | None = None
    custom_message: str | None = None
    old_scheduled_at: datetime | None = None
    cancellation_reason: str | None = None


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


TIPS = (
    "Find a quiet place with a stable internet connection",
    "Take your time to think through each question",
    "Use specific examples where you can",
    "Your answers are saved automatically",
)

_STYLE = (
    "body{font-family:-apple-system,'Segoe UI',Roboto,Arial,sans-serif;line-height:1.6;color:#333}"
    ".container{max-width:600px;margin:0 auto;padding:20px}"
    ".content{background:#f9fafb;border-radius:8px;padding:24px;margin-bottom:24px}"
    ".button{display:inline-block;background:#6366f1;color:#fff;padding:12px 24px;border-radius:6px;text-decoration:none}"
    ".footer{text-align:center;color:#9ca3af;font-size:12px;margin-top:30px}"
)


def format_when(value: datetime | None) -> str:
    if value is None:
        return "To be confirmed"
    dt = as_utc(value)
    hour = dt.hour % 12 or 12
    return f"{dt:%A, %B} {dt.day}, {dt:%Y} at {hour}:{dt:%M %p} UTC"


def _company(data: EmailTemplateData) -> str:
    return data.company_name or settings.COMPANY_NAME


def _layout(data: EmailTemplateData, heading: str, paragraphs: list[str], *, button: str | None = None) -> str:
    body = "".join(f"<p>{p}</p>" for p in paragraphs)
    if button and data.interview_link:
        body += f'<p><a class="button" href="{escape(data.interview_link)}">{escape(button)}</a></p>'
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8">'
        f"<style>{_STYLE}</style></head><body><div class=\"container\">"
        f"<h1>{escape(heading)}</h1><div class=\"content\">{body}</div>"
        f'<div class="footer"><p>This email was sent by {escape(_company(data))}</p>'
        "<p>If you didn't apply for this position, please ignore this email.</p></div>"
        "</div></body></html>"
    )


def _details(data: EmailTemplateData) -> list[str]:
    return [
        f"Position: {data.job_title}",
        f"When: {format_when(data.scheduled_at)}",
        f"Duration: ~{data.duration_minutes} minutes",
    ]


def _render_scheduled(data: EmailTemplateData) -> RenderedEmail:
    subject = f"Your AI Interview for {data.job_title} is Scheduled"
    lines = [f"Hi {data.candidate_name},", f"Your AI interview for the {data.job_title} position has been scheduled."]
    if data.custom_message:
        lines.append(f"Message from the recruiter: {data.custom_message}")
    lines.extend(_details(data))
    text_lines = lines + [f"Start your interview here: {data.interview_link}", "Tips:"] + [f"- {t}" for t in TIPS]
    html = _layout(
        data,
        "Your interview is scheduled",
        [escape(line) for line in lines] + ["<br>".join(escape(t) for t in TIPS)],
        button="Open interview",
    )
    return RenderedEmail(subject=subject, html=html, text="\n\n".join(text_lines))


def _render_reminder(data: EmailTemplateData, hours: int) -> RenderedEmail:
    if hours == 24:
        subject = f"Reminder: Your AI Interview for {data.job_title} is Tomorrow"
        when = "tomorrow"
    else:
        subject = f"Starting Soon: Your AI Interview for {data.job_title}"
        when = "in 1 hour"
    lines = [f"Hi {data.candidate_name},", f"Your AI interview for {data.job_title} starts {when}."] + _details(data)
    html = _layout(data, "Interview reminder", [escape(line) for line in lines], button="Open interview")
    return RenderedEmail(
        subject=subject,
        html=html,
        text="\n\n".join(lines + [f"Interview link: {data.interview_link}"]),
    )


def _render_ready(data: EmailTemplateData) -> RenderedEmail:
    subject = f"Your AI Interview for {data.job_title} is Ready"
    lines = [
        f"Hi {data.candidate_name},",
        f"Your AI interview for {data.job_title} is now open.",
        f"You have about {data.duration_minutes} minutes to complete it.",
    ]
    html = _layout(data, "Your interview is ready", [escape(line) for line in lines], button="Start interview")
    return RenderedEmail(
        subject=subject,
        html=html,
        text="\n\n".join(lines + [f"Start your interview here: {data.interview_link}"]),
    )


def _render_completed(data: EmailTemplateData) -> RenderedEmail:
    subject = f"Thank You for Completing Your Interview - {data.job_title}"
    lines = [
        f"Hi {data.candidate_name},",
        f"Thank you for completing your AI interview for {data.job_title}.",
        "Our team will review your responses and get back to you soon.",
    ]
    html = _layout(data, "Thank you", [escape(line) for line in lines])
    return RenderedEmail(subject=subject, html=html, text="\n\n".join(lines))


def _render_rescheduled(data: EmailTemplateData) -> RenderedEmail:
    subject = f"Your Interview for {data.job_title} Has Been Rescheduled"
    lines = [
        f"Hi {data.candidate_name},",
        f"Your AI interview for {data.job_title} has been moved.",
        f"Previous time: {format_when(data.old_scheduled_at)}",
        f"New time: {format_when(data.scheduled_at)}",
    ]
    if data.custom_message:
        lines.append(f"Reason: {data.custom_message}")
    html = _layout(data, "Interview rescheduled", [escape(line) for line in lines], button="Open interview")
    return RenderedEmail(
        subject=subject,
        html=html,
        text="\n\n".join(lines + [f"Interview link: {data.interview_link}"]),
    )


def _render_cancelled(data: EmailTemplateData) -> RenderedEmail:
    subject = f"Your Interview for {data.job_title} Has Been Cancelled"
    lines = [
        f"Hi {data.candidate_name},",
        f"Your AI interview for {data.job_title} scheduled for {format_when(data.scheduled_at)} has been cancelled.",
    ]
    if data.cancellation_reason:
        lines.append(f"Reason: {data.cancellation_reason}")
    lines.append("If you have any questions, please reply to this email.")
    html = _layout(data, "Interview cancelled", [escape(line) for line in lines])
    return RenderedEmail(subject=subject, html=html, text="\n\n".join(lines))


def render_email(email_type: EmailType | str, data: EmailTemplateData) -> RenderedEmail:
    kind = EmailType(email_type)
    if kind == EmailType.interview_scheduled:
        return _render_scheduled(data)
    if kind == EmailType.interview_reminder_24h:
        return _render_reminder(data, 24)
    if kind == EmailType.interview_reminder_1h:
        return _render_reminder(data, 1)
    if kind == EmailType.interview_ready:
        return _render_ready(data)
    if kind == EmailType.interview_completed:
        return _render_completed(data)
    if kind == EmailType.interview_rescheduled:
        return _render_rescheduled(data)
    return _render_cancelled(data)
