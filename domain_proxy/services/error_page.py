"""
Branded Error Page

Every failure the proxy absorbs ends up here. Hostname and path come from
the client, so the template is rendered with autoescaping on.
"""

from datetime import datetime, timezone
from typing import Optional

from jinja2 import Environment, PackageLoader, select_autoescape

ERROR_TITLES = {
    404: "Link Not Found",
    500: "Server Error",
    502: "Backend Unavailable",
    503: "Service Unavailable",
}

_env = Environment(
    loader=PackageLoader("domain_proxy", "templates"),
    autoescape=select_autoescape(["html"]),
)


def error_title(status_code: int) -> str:
    return ERROR_TITLES.get(status_code, "Error")


def render_error_page(
    hostname: str,
    path: str,
    status_code: int,
    brand_name: str,
    brand_home_url: str,
    now: Optional[datetime] = None,
) -> str:
    """
    Render the HTML error page.

    Args:
        hostname: Inbound hostname the visitor used
        path: Requested path
        status_code: Status the client receives
        brand_name: Product name shown in title and footer
        brand_home_url: Call-to-action link target
        now: Timestamp to embed (defaults to current UTC time)
    """
    now = now or datetime.now(timezone.utc)
    template = _env.get_template("error.html")
    return template.render(
        title=error_title(status_code),
        hostname=hostname,
        path=path,
        status_code=status_code,
        timestamp=now.isoformat(),
        brand_name=brand_name,
        brand_home_url=brand_home_url,
    )
