"""Update banner markup and styles shared by both update notifiers."""

import html

# UPDATE BANNER CSS
# Slides in from the top; .show is added after insertion to animate.

UPDATE_BANNER_CSS = """
.update-banner {
    position: fixed;
    top: 0;
    left: 0;
    right: 0;
    background: linear-gradient(135deg, #B8375B, #778053);
    color: white;
    padding: 16px;
    z-index: 10000;
    box-shadow: 0 4px 12px rgba(0,0,0,0.15);
    transform: translateY(-100%);
    transition: transform 0.3s ease;
}
.update-banner.show {
    transform: translateY(0);
}
.update-banner-content {
    max-width: 1200px;
    margin: 0 auto;
    display: flex;
    align-items: center;
    justify-content: space-between;
    flex-wrap: wrap;
    gap: 16px;
}
.update-banner-content h3 {
    margin: 0;
    font-family: 'Playfair Display', serif;
    font-size: 1.2em;
}
.update-banner-content p {
    margin: 0;
    opacity: 0.9;
}
.update-banner-actions {
    display: flex;
    gap: 12px;
}
.update-banner-actions button {
    padding: 8px 16px;
    border: none;
    border-radius: 6px;
    cursor: pointer;
    font-weight: 600;
}
.update-banner-actions .btn-primary {
    background: white;
    color: #B8375B;
}
.update-banner-actions .btn-secondary {
    background: transparent;
    color: white;
    border: 1px solid rgba(255,255,255,0.3);
}
@media (max-width: 768px) {
    .update-banner-content {
        flex-direction: column;
        text-align: center;
    }
}
"""


def render_banner_markup(banner_id: str, title: str, message: str, action_label: str) -> str:
    """Return the banner HTML.

    Buttons get the ids ``<banner_id>-now`` and ``<banner_id>-later``.
    """
    return (
        f'<div class="update-banner" id="{html.escape(banner_id)}" role="alert" aria-live="polite">'
        '<div class="update-banner-content">'
        f"<h3>{html.escape(title)}</h3>"
        f"<p>{html.escape(message)}</p>"
        '<div class="update-banner-actions">'
        f'<button id="{html.escape(banner_id)}-now" class="btn-primary">{html.escape(action_label)}</button>'
        f'<button id="{html.escape(banner_id)}-later" class="btn-secondary">Later</button>'
        "</div></div></div>"
    )
