from __future__ import annotations

from typing import Dict, List

# (lower-case header, substring, technology)
HEADER_MARKERS = [
    ("server", "apache", "Apache"),
    ("server", "nginx", "Nginx"),
    ("server", "iis", "IIS"),
    ("server", "cloudflare", "Cloudflare"),
    ("server", "litespeed", "LiteSpeed"),
    ("x-powered-by", "php", "PHP"),
    ("x-powered-by", "asp.net", "ASP.NET"),
    ("x-powered-by", "express", "Express"),
    ("x-powered-by", "next.js", "Next.js"),
    ("x-aspnet-version", "", "ASP.NET"),
    ("x-drupal-cache", "", "Drupal"),
    ("x-generator", "drupal", "Drupal"),
    ("x-generator", "wordpress", "WordPress"),
    ("set-cookie", "phpsessid", "PHP"),
    ("set-cookie", "jsessionid", "Java"),
]

# (substring of lower-case page content, technology)
CONTENT_MARKERS = [
    ("wp-content", "WordPress"),
    ("wordpress", "WordPress"),
    ("drupal", "Drupal"),
    ("joomla", "Joomla"),
]


def detect_technologies(headers: Dict[str, str], content: str = "") -> List[str]:
    """Pattern-match header values and page content; result is de-duplicated, first hit order."""
    lowered = {k.lower(): v.lower() for k, v in headers.items()}
    found: List[str] = []

    for header, marker, tech in HEADER_MARKERS:
        value = lowered.get(header)
        if value is None or marker not in value:
            continue
        if tech not in found:
            found.append(tech)

    text = content.lower()
    for marker, tech in CONTENT_MARKERS:
        if marker in text and tech not in found:
            found.append(tech)

    return found
