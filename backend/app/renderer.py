"""Email rendering for application and pay stub notifications.

The dispatcher only needs a subject and a body; which renderer produces
them is chosen by settings (EMAIL_FORMAT).
"""

from dataclasses import dataclass
from html import escape
from typing import Optional

from .events import Status

FOOTER_APPLICATION = "This is an automated notification from the Citizen Portal."
FOOTER_PAY_STUB = "This is an automated notification from the Employee Portal."
NO_REPLY = "Please do not reply to this email."


@dataclass
class ApplicationEmailContext:
    """Inputs for an application status email."""

    application_label: str
    status: Status
    reference: str
    link: str
    name: Optional[str] = None
    admin_notes: Optional[str] = None
    needs_action_note: Optional[str] = None
    rejection_reason: Optional[str] = None


@dataclass
class PayStubEmailContext:
    """Inputs for a pay stub email."""

    reference: str
    link: str
    employee_name: Optional[str] = None
    period_name: Optional[str] = None


@dataclass
class RenderedEmail:
    subject: str
    body: str
    is_html: bool


def application_subject(ctx: ApplicationEmailContext) -> str:
    """Pick the subject line; status takes precedence over notes."""
    suffix = f"{ctx.application_label} - Reference {ctx.reference}"
    if ctx.status == Status.NEEDS_ACTION:
        return f"Action Required: {suffix}"
    if ctx.status == Status.APPROVED:
        return f"Application Approved: {suffix}"
    if ctx.status == Status.REJECTED:
        return f"Application Status Update: {suffix}"
    return f"Status Update: {suffix}"


def application_message(ctx: ApplicationEmailContext) -> tuple[str, Optional[str]]:
    """Return (status message, next steps) as plain text."""
    label = ctx.application_label
    if ctx.status == Status.NEEDS_ACTION:
        return (
            f"We require additional information or action from you to continue "
            f"processing your {label}. Please review the details below and take "
            f"the necessary steps at your earliest convenience to avoid delays.",
            "Please log in to your portal and address the items mentioned in the "
            "notes below.",
        )
    if ctx.status == Status.APPROVED:
        return (
            f"We are pleased to inform you that your {label} has been approved.",
            "Please log in to your portal to view complete details and download "
            "any necessary documents.",
        )
    if ctx.status == Status.REJECTED:
        return (
            f"After careful review, we regret to inform you that your {label} has "
            f"not been approved at this time.",
            "If you have questions or wish to reapply, please log in to your "
            "portal or contact our support team.",
        )
    if ctx.status == Status.IN_REVIEW:
        return (
            f"Your {label} is now being reviewed by our team. We will notify you "
            f"once the review is complete.",
            "You can track the status at any time by logging in to your portal.",
        )
    return f"Your {label} status has been updated to {ctx.status.label}.", None


def application_notes(ctx: ApplicationEmailContext) -> list[tuple[str, str]]:
    notes = []
    if ctx.admin_notes:
        notes.append(("Administrator Notes", ctx.admin_notes))
    if ctx.needs_action_note:
        notes.append(("Action Required Details", ctx.needs_action_note))
    if ctx.rejection_reason:
        notes.append(("Reason for Status", ctx.rejection_reason))
    return notes


def pay_stub_subject(ctx: PayStubEmailContext) -> str:
    if ctx.period_name:
        return f"New Pay Stub Available: {ctx.period_name}"
    return "New Pay Stub Available"


class EmailRenderer:
    """Base renderer; subclasses decide the body format."""

    is_html = False

    def render_application(self, ctx: ApplicationEmailContext) -> RenderedEmail:
        raise NotImplementedError

    def render_pay_stub(self, ctx: PayStubEmailContext) -> RenderedEmail:
        raise NotImplementedError


class TextEmailRenderer(EmailRenderer):
    """Plain text emails."""

    def render_application(self, ctx: ApplicationEmailContext) -> RenderedEmail:
        message, next_steps = application_message(ctx)
        lines = [f"Dear {ctx.name or 'Applicant'},", "", message, ""]
        if next_steps:
            lines += [next_steps, ""]
        lines += [
            f"Type: {ctx.application_label}",
            f"Reference: {ctx.reference}",
            f"Status: {ctx.status.label}",
            "",
        ]
        for title, text in application_notes(ctx):
            lines += [f"{title}:", text, ""]
        if ctx.link:
            lines += [f"View application details: {ctx.link}", ""]
        lines += [FOOTER_APPLICATION, NO_REPLY]
        return RenderedEmail(application_subject(ctx), "\n".join(lines), False)

    def render_pay_stub(self, ctx: PayStubEmailContext) -> RenderedEmail:
        period = f" for {ctx.period_name}" if ctx.period_name else ""
        lines = [
            f"Dear {ctx.employee_name or 'Employee'},",
            "",
            f"Your pay stub{period} is now available for viewing and download in "
            f"your employee portal.",
            "",
            f"Reference: {ctx.reference}",
            "",
        ]
        if ctx.link:
            lines += [f"View pay stub: {ctx.link}", ""]
        lines += [FOOTER_PAY_STUB, NO_REPLY]
        return RenderedEmail(pay_stub_subject(ctx), "\n".join(lines), False)


def _html_page(title: str, content: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="margin:0;padding:0;font-family:Arial,sans-serif;background:#f3f4f6;">
  <div style="max-width:600px;margin:0 auto;background:#ffffff;">
    <div style="background:#1e40af;padding:32px 24px;text-align:center;">
      <h1 style="margin:0;color:#ffffff;font-size:24px;">{escape(title)}</h1>
    </div>
    <div style="padding:32px 24px;">
{content}
    </div>
    <div style="background:#f9fafb;padding:24px;text-align:center;border-top:1px solid #e5e7eb;">
      <p style="margin:0 0 8px;color:#6b7280;font-size:13px;">{escape(footer)}</p>
      <p style="margin:0;color:#9ca3af;font-size:12px;">{NO_REPLY}</p>
    </div>
  </div>
</body>
</html>"""


def _html_button(link: str, text: str) -> str:
    if not link:
        return ""
    return (
        f'<div style="text-align:center;margin:32px 0;">'
        f'<a href="{escape(link)}" style="display:inline-block;background:#3b82f6;'
        f'color:#ffffff;text-decoration:none;padding:14px 32px;border-radius:6px;">'
        f"{escape(text)}</a></div>"
    )


class HtmlEmailRenderer(EmailRenderer):
    """HTML emails. Every interpolated value is escaped."""

    is_html = True

    def render_application(self, ctx: ApplicationEmailContext) -> RenderedEmail:
        message, next_steps = application_message(ctx)
        parts = [
            f"<p>Dear {escape(ctx.name or 'Applicant')},</p>",
            f"<p>{escape(message)}</p>",
        ]
        if next_steps:
            parts.append(
                f'<div style="border:2px solid #3b82f6;padding:20px;margin:24px 0;">'
                f"<p>{escape(next_steps)}</p></div>"
            )
        parts.append(
            '<table style="width:100%;border-collapse:collapse;">'
            f"<tr><td>Type:</td><td><strong>{escape(ctx.application_label)}</strong></td></tr>"
            f"<tr><td>Reference:</td><td><strong>{escape(ctx.reference)}</strong></td></tr>"
            f"<tr><td>Status:</td><td><strong>{escape(ctx.status.label)}</strong></td></tr>"
            "</table>"
        )
        for title, text in application_notes(ctx):
            parts.append(
                f'<div style="border:1px solid #d1d5db;padding:16px;margin:16px 0;">'
                f"<p><strong>{escape(title)}:</strong></p>"
                f'<p style="white-space:pre-wrap;">{escape(text)}</p></div>'
            )
        parts.append(_html_button(ctx.link, "View Application Details"))
        body = _html_page(
            "Application Status Update", "\n".join(parts), FOOTER_APPLICATION
        )
        return RenderedEmail(application_subject(ctx), body, True)

    def render_pay_stub(self, ctx: PayStubEmailContext) -> RenderedEmail:
        period = f" for {escape(ctx.period_name)}" if ctx.period_name else ""
        parts = [
            f"<p>Dear {escape(ctx.employee_name or 'Employee')},</p>",
            f"<p>Your pay stub{period} is now available for viewing and download "
            f"in your employee portal.</p>",
        ]
        if ctx.period_name:
            parts.append(f"<p>Period: {escape(ctx.period_name)}</p>")
        parts.append(f"<p>Reference: {escape(ctx.reference)}</p>")
        parts.append(_html_button(ctx.link, "View Pay Stub"))
        body = _html_page("New Pay Stub Available", "\n".join(parts), FOOTER_PAY_STUB)
        return RenderedEmail(pay_stub_subject(ctx), body, True)


def get_renderer(email_format: str = "html") -> EmailRenderer:
    """Get the renderer for a format ("html" or "text").

    Raises:
        ValueError: If the format is unknown
    """
    if email_format == "html":
        return HtmlEmailRenderer()
    elif email_format == "text":
        return TextEmailRenderer()
    raise ValueError(f"Unknown email format: {email_format}")


def build_portal_link(base_url: Optional[str], path: Optional[str]) -> str:
    """Join base URL and path with exactly one slash."""
    base = str(base_url or "").rstrip("/")
    trimmed = str(path or "").lstrip("/")
    if base and trimmed:
        return f"{base}/{trimmed}"
    return base
