"""Email templates for registration workflow notifications."""

from __future__ import annotations

from datetime import datetime
from html import escape

from unireg.notifier.models import EmailMessage

_WRAPPER = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
    "{body}</div>"
)
_LINK = (
    '<a href="{url}" style="display: inline-block; background-color: #4CAF50; '
    'color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px; '
    'margin: 20px 0;">{label}</a>'
)


def _html(heading: str, paragraphs: list[str], url: str | None = None, label: str = "") -> str:
    parts = [f"<h2>{escape(heading)}</h2>"]
    parts.extend(f"<p>{escape(p)}</p>" for p in paragraphs)
    if url:
        parts.append(_LINK.format(url=escape(url, quote=True), label=escape(label)))
    return _WRAPPER.format(body="".join(parts))


def _text(heading: str, paragraphs: list[str], url: str | None = None) -> str:
    lines = [heading, ""]
    lines.extend(paragraphs)
    if url:
        lines.extend(["", url])
    return "\n".join(lines)


def registration_submitted_for_registrars(
    registrar_emails: list[str],
    student_name: str,
    semester_name: str,
    course_count: int,
    submitted_at: datetime,
    app_url: str,
) -> EmailMessage:
    """Tell registrars a student submitted a registration for review."""
    url = f"{app_url}/dashboard/approvals"
    paragraphs = [
        f"{student_name} submitted a registration for {semester_name}.",
        f"Courses requested: {course_count}",
        f"Submitted at: {submitted_at:%Y-%m-%d %H:%M} UTC",
    ]
    return EmailMessage(
        to=registrar_emails,
        subject=f"New Registration Submitted - {student_name}",
        text=_text("New Registration Submitted", paragraphs, url),
        html=_html("New Registration Submitted", paragraphs, url, "Review Registrations"),
    )


def registration_submitted_for_student(
    student_email: str,
    student_name: str,
    semester_name: str,
    registration_id: str,
    app_url: str,
) -> EmailMessage:
    """Confirm to the student that their registration awaits review."""
    url = f"{app_url}/dashboard/registration?id={registration_id}"
    paragraphs = [
        f"Dear {student_name},",
        f"Your registration for {semester_name} was submitted and is awaiting review "
        "by the registrar.",
    ]
    return EmailMessage(
        to=[student_email],
        subject="Registration Submitted",
        text=_text("Registration Submitted", paragraphs, url),
        html=_html("Registration Submitted", paragraphs, url, "View Registration"),
    )


def registration_approved(
    student_email: str,
    student_name: str,
    semester_name: str,
    card_number: str,
    registration_id: str,
    app_url: str,
) -> EmailMessage:
    """Tell the student their registration was approved, with the card number."""
    url = f"{app_url}/dashboard/registration?id={registration_id}"
    paragraphs = [
        f"Dear {student_name},",
        f"Your registration for {semester_name} has been approved.",
        f"Registration card number: {card_number}",
    ]
    return EmailMessage(
        to=[student_email],
        subject="Registration Approved",
        text=_text("Registration Approved", paragraphs, url),
        html=_html("Registration Approved", paragraphs, url, "View Registration Card"),
    )


def registration_rejected(
    student_email: str,
    student_name: str,
    semester_name: str,
    reason: str,
    app_url: str,
) -> EmailMessage:
    """Tell the student their registration was rejected, with the reason."""
    url = f"{app_url}/dashboard/registration"
    paragraphs = [
        f"Dear {student_name},",
        f"Your registration for {semester_name} has been rejected.",
        f"Reason: {reason or 'No reason provided'}",
    ]
    return EmailMessage(
        to=[student_email],
        subject="Registration Rejected",
        text=_text("Registration Rejected", paragraphs, url),
        html=_html("Registration Rejected", paragraphs, url, "View Registration"),
    )


def registration_cancelled(
    student_email: str,
    student_name: str,
    semester_name: str,
    app_url: str,
) -> EmailMessage:
    """Tell the student their registration was cancelled."""
    url = f"{app_url}/dashboard/registration"
    paragraphs = [
        f"Dear {student_name},",
        f"Your registration for {semester_name} has been cancelled. "
        "All requested courses were withdrawn.",
    ]
    return EmailMessage(
        to=[student_email],
        subject="Registration Cancelled",
        text=_text("Registration Cancelled", paragraphs, url),
        html=_html("Registration Cancelled", paragraphs, url, "Start a New Registration"),
    )


def course_rejected(
    student_email: str,
    student_name: str,
    course_title: str,
    reason: str,
    app_url: str,
) -> EmailMessage:
    """Tell the student one requested course was rejected."""
    url = f"{app_url}/dashboard/registration"
    paragraphs = [
        f"Dear {student_name},",
        f"Your course registration for {course_title} has been rejected.",
        f"Reason: {reason}",
    ]
    return EmailMessage(
        to=[student_email],
        subject=f"Course Rejected - {course_title}",
        text=_text("Course Rejected", paragraphs, url),
        html=_html("Course Rejected", paragraphs, url, "View Registration"),
    )
