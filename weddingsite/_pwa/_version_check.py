"""Runtime version checker JavaScript.

Fallback update notifier for browsers without service workers: polls
version.json and offers a reload when the deployed version changes.
"""

import json

from ..config import ServiceWorkerConfig, UpdatesConfig
from ._banner import UPDATE_BANNER_CSS, render_banner_markup

BANNER_ID = "version-update-banner"


def render_version_check_js(config: UpdatesConfig, sw_config: ServiceWorkerConfig) -> str:
    """Render version-check.js.

    Args:
        config: Polling interval and banner timeout.
        sw_config: Supplies the version.json path.
    """
    js = json.dumps
    banner_html = render_banner_markup(
        BANNER_ID,
        "Site Updated!",
        "A new version of the site is available.",
        "Reload Now",
    )

    return f"""// Runtime version checker (fallback for browsers without service workers)
(function () {{
    if ('serviceWorker' in navigator) {{
        return;
    }}

    const VERSION_URL = {js(sw_config.version_path)};
    const CHECK_INTERVAL_MS = {config.check_interval_seconds * 1000};
    const BANNER_TIMEOUT_MS = {config.banner_timeout_seconds * 1000};
    const BANNER_ID = {js(BANNER_ID)};
    const BANNER_HTML = {js(banner_html)};
    const BANNER_CSS = {js(UPDATE_BANNER_CSS)};

    let currentVersion = null;
    let intervalId = null;
    let isChecking = false;

    function fetchVersion() {{
        return fetch(VERSION_URL + '?t=' + Date.now(), {{ cache: 'no-cache' }})
            .then(response => response.ok ? response.json() : null);
    }}

    function startChecking() {{
        stopChecking();
        intervalId = setInterval(checkForUpdates, CHECK_INTERVAL_MS);
    }}

    function stopChecking() {{
        if (intervalId) {{
            clearInterval(intervalId);
            intervalId = null;
        }}
    }}

    function checkForUpdates() {{
        if (isChecking) return;
        isChecking = true;

        fetchVersion()
            .then(data => {{
                if (data && currentVersion && data.version !== currentVersion) {{
                    console.log('New version detected:', data.version);
                    // Stop polling while the banner is visible
                    stopChecking();
                    showUpdateBanner();
                }}
            }})
            .catch(error => console.log('Version check failed:', error))
            .finally(() => {{
                isChecking = false;
            }});
    }}

    function showUpdateBanner() {{
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

        document.getElementById(BANNER_ID + '-now').addEventListener('click', () => {{
            window.location.reload();
        }});
        document.getElementById(BANNER_ID + '-later').addEventListener('click', hideUpdateBanner);

        setTimeout(hideUpdateBanner, BANNER_TIMEOUT_MS);
    }}

    function hideUpdateBanner() {{
        const banner = document.getElementById(BANNER_ID);
        if (!banner) return;
        banner.classList.remove('show');
        setTimeout(() => banner.remove(), 300);
        startChecking();
    }}

    function init() {{
        fetchVersion()
            .then(data => {{
                if (data) {{
                    currentVersion = data.version;
                    console.log('Current version:', currentVersion);
                }}
            }})
            .catch(error => console.log('Failed to get current version:', error));

        startChecking();
        window.addEventListener('focus', checkForUpdates);
        document.addEventListener('visibilitychange', () => {{
            if (!document.hidden) {{
                checkForUpdates();
            }}
        }});
    }}

    if (document.readyState === 'loading') {{
        document.addEventListener('DOMContentLoaded', init);
    }} else {{
        init();
    }}
}})();
"""
