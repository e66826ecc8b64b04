"""
AssetDrop - Review notification email templates

HTML and plain-text bodies for the "your assets have been reviewed" email.
Client-supplied text (file names, remarks, reasons, project names) is
HTML-escaped before interpolation.
"""
from dataclasses import dataclass, field
from html import escape
from typing import List, Optional


@dataclass
class ReviewedItem:
    file_name: str
    note: Optional[str] = None  # approval remark or rejection reason


@dataclass
class ReviewEmailData:
    project_name: str
    shareable_link: str
    approved: List[ReviewedItem] = field(default_factory=list)
    rejected: List[ReviewedItem] = field(default_factory=list)


def review_email_subject(project_name: str) -> str:
    return f"Asset Review Complete - {project_name}"


def _approved_html(items: List[ReviewedItem]) -> str:
    rows = ""
    for item in items:
        remark = ""
        if item.note:
            remark = f'<p style="margin: 8px 0 0 0; color: #047857; font-size: 14px; font-style: italic;">"{escape(item.note)}"</p>'
        rows += f"""
            <div style="margin-bottom: 15px; padding-bottom: 15px; border-bottom: 1px solid #d1fae5;">
              <p style="margin: 0; color: #065f46; font-weight: 600; font-size: 16px;">{escape(item.file_name)}</p>
              {remark}
            </div>"""
    return f"""
      <div style="margin-bottom: 30px;">
        <h3 style="margin: 0 0 15px 0; color: #059669; font-size: 20px;">Approved Assets</h3>
        <div style="background-color: #ecfdf5; border-left: 4px solid #059669; border-radius: 4px; padding: 20px;">{rows}
        </div>
      </div>"""


def _rejected_html(items: List[ReviewedItem]) -> str:
    rows = ""
    for item in items:
        reason = ""
        if item.note:
            reason = f"""
              <div style="margin: 8px 0 0 0; padding: 12px; background-color: #ffffff; border-radius: 4px; border: 1px solid #fecaca;">
                <p style="margin: 0; color: #7f1d1d; font-size: 14px;"><strong>Reason:</strong> {escape(item.note)}</p>
              </div>"""
        rows += f"""
            <div style="margin-bottom: 15px; padding-bottom: 15px; border-bottom: 1px solid #fecaca;">
              <p style="margin: 0; color: #991b1b; font-weight: 600; font-size: 16px;">{escape(item.file_name)}</p>{reason}
            </div>"""
    return f"""
      <div style="margin-bottom: 30px;">
        <h3 style="margin: 0 0 15px 0; color: #dc2626; font-size: 20px;">Rejected Assets - Please Re-upload</h3>
        <div style="background-color: #fef2f2; border-left: 4px solid #dc2626; border-radius: 4px; padding: 20px;">{rows}
        </div>
        <div style="margin-top: 20px; padding: 15px; background-color: #fef3c7; border-left: 4px solid #f59e0b; border-radius: 4px;">
          <p style="margin: 0; color: #92400e; font-size: 14px;">
            <strong>Action Required:</strong> Please upload corrected versions of the rejected files using the link below.
          </p>
        </div>
      </div>"""


def render_review_email_html(data: ReviewEmailData) -> str:
    project_name = escape(data.project_name)

    if data.rejected:
        call_to_action = f"""
      <div style="margin: 30px 0; text-align: center;">
        <a href="{escape(data.shareable_link, quote=True)}" style="display: inline-block; background: #3b82f6; color: #ffffff; text-decoration: none; padding: 16px 32px; border-radius: 8px; font-size: 16px; font-weight: 600;">
          Re-upload Rejected Files
        </a>
      </div>"""
    else:
        call_to_action = """
      <div style="margin: 30px 0; padding: 20px; background-color: #ecfdf5; border-radius: 8px; text-align: center;">
        <p style="margin: 0; color: #065f46; font-size: 16px; font-weight: 600;">All your files have been approved! No further action needed.</p>
      </div>"""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Asset Review - {project_name}</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f5f5f5;">
  <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff;">
    <div style="background: linear-gradient(135deg, #3b82f6 0%, #8b5cf6 100%); padding: 40px 30px; text-align: center;">
      <h1 style="margin: 0; color: #ffffff; font-size: 28px;">AssetDrop</h1>
      <p style="margin: 10px 0 0 0; color: #e0e7ff; font-size: 14px;">Asset Review Notification</p>
    </div>
    <div style="padding: 40px 30px;">
      <h2 style="margin: 0 0 20px 0; color: #1f2937; font-size: 24px;">Your Assets Have Been Reviewed</h2>
      <p style="margin: 0 0 30px 0; color: #4b5563; font-size: 16px; line-height: 1.6;">
        Your submitted assets for <strong>{project_name}</strong> have been reviewed. Here's the breakdown:
      </p>
      <div style="background-color: #f9fafb; border: 1px solid #e5e7eb; border-radius: 8px; padding: 20px; margin-bottom: 30px;">
        <table style="width: 100%; border-collapse: collapse;">
          <tr>
            <td style="padding: 10px 0; color: #059669;"><strong>Approved:</strong></td>
            <td style="padding: 10px 0; text-align: right; color: #059669; font-size: 20px; font-weight: bold;">{len(data.approved)}</td>
          </tr>
          <tr>
            <td style="padding: 10px 0; color: #dc2626;"><strong>Rejected:</strong></td>
            <td style="padding: 10px 0; text-align: right; color: #dc2626; font-size: 20px; font-weight: bold;">{len(data.rejected)}</td>
          </tr>
        </table>
      </div>
      {_approved_html(data.approved) if data.approved else ""}
      {_rejected_html(data.rejected) if data.rejected else ""}
      {call_to_action}
      <p style="margin: 30px 0 0 0; color: #6b7280; font-size: 14px;">
        If you have any questions about this review, please contact the project owner directly.
      </p>
    </div>
    <div style="background-color: #f9fafb; padding: 30px; text-align: center; border-top: 1px solid #e5e7eb;">
      <p style="margin: 0 0 10px 0; color: #6b7280; font-size: 14px;">This is an automated notification from AssetDrop</p>
      <p style="margin: 0; color: #9ca3af; font-size: 12px;">Professional Asset Collection &amp; Management</p>
    </div>
  </div>
</body>
</html>"""


def render_review_email_text(data: ReviewEmailData) -> str:
    separator = "=" * 50
    lines = [
        f"Asset Review Complete - {data.project_name}",
        "",
        f'Your submitted assets for "{data.project_name}" have been reviewed.',
        "",
        "SUMMARY:",
        f"Approved: {len(data.approved)}",
        f"Rejected: {len(data.rejected)}",
        "",
    ]

    if data.approved:
        lines += ["APPROVED ASSETS:", separator]
        for item in data.approved:
            lines.append(f"- {item.file_name}")
            if item.note:
                lines.append(f"  Note: {item.note}")
        lines.append("")

    if data.rejected:
        lines += ["REJECTED ASSETS - PLEASE RE-UPLOAD:", separator]
        for item in data.rejected:
            lines.append(f"- {item.file_name}")
            if item.note:
                lines.append(f"  Reason: {item.note}")
        lines += [
            "",
            "ACTION REQUIRED: Please upload corrected versions of the rejected files.",
            "",
            f"Re-upload here: {data.shareable_link}",
            "",
        ]
    else:
        lines += ["All your files have been approved! No further action needed.", ""]

    lines += [
        "If you have any questions, please contact the project owner.",
        "",
        "---",
        "This is an automated notification from AssetDrop",
    ]
    return "\n".join(lines) + "\n"
