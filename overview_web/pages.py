"""
HTML for the overview app. Plain strings; every dynamic value goes through html.escape.
"""
import html
from urllib.parse import quote

from overview_web.directory import Service, ServiceType


def page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
{body}
</body>
</html>"""


def message_page(title: str, message: str, *, link: tuple[str, str] = ("/", "Home")) -> str:
    href, label = link
    return page(
        title,
        f"""  <h1>{html.escape(title)}</h1>
  <p>{html.escape(message)}</p>
  <p><a href="{html.escape(href)}">{html.escape(label)}</a></p>""",
    )


def logged_out_page() -> str:
    return page(
        "Volunteer overview",
        """  <h1>Volunteer overview</h1>
  <p>You are logged out.</p>
  <p><a href="/login">Log in with Elvanto</a></p>""",
    )


def _service_html(service: Service, public_domain: str) -> str:
    title = html.escape(service.name)
    if public_domain and service.id:
        href = f"{public_domain}/admin/services/service/?id={quote(service.id)}"
        title = f'<a href="{html.escape(href)}">{title}</a>'
    parts = [f"    <h3>{html.escape(service.date)}: {title} at {html.escape(service.location)}</h3>"]
    if not service.departments:
        parts.append("    <p>No volunteers assigned.</p>")
    for dept in service.departments:
        parts.append(f"    <h4>{html.escape(dept.name)}</h4>")
        parts.append("    <ul>")
        for pos in dept.positions:
            names = ", ".join(html.escape(v) for v in pos.volunteers)
            parts.append(f"      <li>{html.escape(pos.name)}: {names}</li>")
        parts.append("    </ul>")
    return "\n".join(parts)


def directory_page(directory: list[ServiceType], public_domain: str = "") -> str:
    sections = []
    for service_type in directory:
        sections.append(f"  <h2>{html.escape(service_type.type)}</h2>")
        sections.extend(_service_html(s, public_domain) for s in service_type.services)
    if not sections:
        sections.append("  <p>No published services.</p>")
    return page(
        "Volunteer overview",
        "  <h1>Volunteer overview</h1>\n"
        + "\n".join(sections)
        + """
  <form method="post" action="/reload"><button type="submit">Reload</button></form>
  <p><a href="/logout">Log out</a></p>""",
    )
