"""Offline fallback page served when a navigation fails with nothing cached."""

import html


def render_offline_page(site_name: str = "") -> str:
    """Return the offline HTML page.

    The page retries the navigation every few seconds so the site comes back
    on its own once the connection does.
    """
    title = html.escape(site_name or "Wedding")
    return (
        '<!DOCTYPE html><html lang="en"><head><meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1">'
        f"<title>{title} - Offline</title>"
        "<style>body{background:#FFFFFF;color:#B8375B;font-family:'Playfair Display',serif;"
        "display:flex;justify-content:center;align-items:center;height:100vh;margin:0}"
        "div{text-align:center}h1{font-size:2.5em}p{color:#778053}</style></head>"
        f"<body><div><h1>{title}</h1><p>You appear to be offline.<br>"
        "This page will try again in a moment.</p>"
        "<script>setTimeout(()=>location.reload(),5000)</script></div></body></html>"
    )
