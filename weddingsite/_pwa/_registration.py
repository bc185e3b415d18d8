"""Service Worker registration JavaScript with update notification.

Registers /sw.js, asks the active worker for a newer version via
CHECK_VERSION and shows the update banner when one is available.
"""

import json

from ..config import UpdatesConfig
from ._banner import UPDATE_BANNER_CSS, render_banner_markup

BANNER_ID = "sw-update-banner"


def render_registration_js(config: UpdatesConfig) -> str:
    """Render sw-registration.js.

    Args:
        config: Polling interval and banner timeout.
    """
    js = json.dumps
    banner_html = render_banner_markup(
        BANNER_ID,
        "New Version Available!",
        "We've updated the site with new details and improvements.",
        "Update Now",
    )

    return f"""// Service Worker registration with update handling
(function () {{
    if (!('serviceWorker' in navigator)) {{
        return;
    }}

    const CHECK_INTERVAL_MS = {config.check_interval_seconds * 1000};
    const BANNER_TIMEOUT_MS = {config.banner_timeout_seconds * 1000};
    const BANNER_ID = {js(BANNER_ID)};
    const BANNER_HTML = {js(banner_html)};
    const BANNER_CSS = {js(UPDATE_BANNER_CSS)};

    let registration = null;
    let updateAvailable = false;
    let refreshing = false;

    function checkVersionWithSW() {{
        return new Promise(resolve => {{
            if (!registration || !registration.active) {{
                resolve(false);
                return;
            }}
            const channel = new MessageChannel();
            channel.port1.onmessage = (event) => resolve(Boolean(event.data && event.data.hasUpdate));
            registration.active.postMessage({{ type: 'CHECK_VERSION' }}, [channel.port2]);
        }});
    }}

    function checkForUpdates() {{
        if (!registration || !registration.active) {{
            return;
        }}
        registration.update().catch(() => {{}});
        checkVersionWithSW()
            .then(hasUpdate => {{
                if (hasUpdate && !updateAvailable) {{
                    showUpdateBanner();
                }}
            }})
            .catch(error => console.log('[PWA] Version check failed:', error));
    }}

    function showUpdateBanner() {{
        updateAvailable = true;
        if (document.getElementById(BANNER_ID)) {{
            return;
        }}

        const styles = document.createElement('style');
        styles.textContent = BANNER_CSS;
        document.head.appendChild(styles);

        const wrapper = document.createElement('div');
        wrapper.innerHTML = BANNER_HTML;
        const banner = wrapper.firstElementChild;
        document.body.appendChild(banner);
        setTimeout(() => banner.classList.add('show'), 100);

        document.getElementById(BANNER_ID + '-now').addEventListener('click', applyUpdate);
        document.getElementById(BANNER_ID + '-later').addEventListener('click', hideUpdateBanner);

        setTimeout(() => {{
            if (updateAvailable) {{
                hideUpdateBanner();
            }}
        }}, BANNER_TIMEOUT_MS);
    }}

    function hideUpdateBanner() {{
        const banner = document.getElementById(BANNER_ID);
        if (banner) {{
            banner.classList.remove('show');
            setTimeout(() => banner.remove(), 300);
        }}
        updateAvailable = false;
    }}

    function applyUpdate() {{
        if (registration && registration.waiting) {{
            // controllerchange reloads once the waiting worker takes over
            registration.waiting.postMessage({{ type: 'SKIP_WAITING' }});
        }} else {{
            window.location.reload();
        }}
    }}

    navigator.serviceWorker.addEventListener('controllerchange', () => {{
        if (refreshing) return;
        refreshing = true;
        console.log('[PWA] New version activated, refreshing...');
        window.location.reload();
    }});

    navigator.serviceWorker.addEventListener('message', (event) => {{
        if (event.data && event.data.type === 'SW_ACTIVATED') {{
            console.log('[PWA] Service Worker activated with version:', event.data.version);
            hideUpdateBanner();
        }}
    }});

    function register() {{
        navigator.serviceWorker.register('/sw.js')
            .then(reg => {{
                registration = reg;
                console.log('[PWA] Service Worker registered');

                reg.addEventListener('updatefound', () => {{
                    const newWorker = reg.installing;
                    newWorker.addEventListener('statechange', () => {{
                        if (newWorker.state === 'installed' && navigator.serviceWorker.controller) {{
                            showUpdateBanner();
                        }}
                    }});
                }});

                setInterval(checkForUpdates, CHECK_INTERVAL_MS);
                window.addEventListener('focus', checkForUpdates);
            }})
            .catch(error => {{
                console.error('[PWA] Service Worker registration failed:', error);
            }});
    }}

    if (document.readyState === 'loading') {{
        document.addEventListener('DOMContentLoaded', register);
    }} else {{
        register();
    }}
}})();
"""
