"""Service Worker JavaScript for offline caching.

Handles caching strategy (same routing as weddingsite.offline):
- Navigations (HTML): Network-first, fallback to cached page or offline page
- Fonts, stylesheets, scripts: Cache-first (static cache)
- Images: Stale-while-revalidate (dynamic cache)
- version.json, sw.js, /uploads: Network-only
"""

import json

from ..config import IMAGE_EXTENSIONS, STATIC_EXTENSIONS, ServiceWorkerConfig
from ._offline import render_offline_page


def render_service_worker(
    version: str,
    config: ServiceWorkerConfig,
    precache: list[str],
    site_name: str = "",
) -> str:
    """Render sw.js for a build.

    Args:
        version: Build version; embedded in both cache names.
        config: Service worker routing configuration.
        precache: URLs stored in the static cache on install.
        site_name: Site name for the header comment and offline page.
    """
    js = json.dumps

    return f"""// Service Worker for {site_name or config.cache_prefix}
// Version: {version} - Generated at build time

const SW_VERSION = {js(version)};
const CACHE_PREFIX = {js(config.cache_prefix)};
const STATIC_CACHE = `${{CACHE_PREFIX}}-static-v${{SW_VERSION}}`;
const DYNAMIC_CACHE = `${{CACHE_PREFIX}}-dynamic-v${{SW_VERSION}}`;

// App shell cached on install
const PRECACHE_URLS = {js(precache, indent=4)};

const STATIC_HOSTS = {js(list(config.static_hosts))};
const NETWORK_ONLY_PATHS = {js(list(config.network_only_paths))};
const STATIC_EXTENSIONS = {js(list(STATIC_EXTENSIONS))};
const IMAGE_EXTENSIONS = {js(list(IMAGE_EXTENSIONS))};
const OFFLINE_FALLBACK = {js(config.offline_fallback)};
const VERSION_PATH = {js(config.version_path)};
const OFFLINE_PAGE = {js(render_offline_page(site_name))};

function extensionOf(pathname) {{
    const name = pathname.split('/').pop();
    const dot = name.lastIndexOf('.');
    return dot > 0 ? name.slice(dot).toLowerCase() : '';
}}

function selectStrategy(request, url) {{
    const sameOrigin = url.origin === self.location.origin;
    const ext = extensionOf(url.pathname);

    if (sameOrigin && NETWORK_ONLY_PATHS.includes(url.pathname)) {{
        return 'network-only';
    }}
    if (request.mode === 'navigate' || request.destination === 'document' ||
        (sameOrigin && (url.pathname === '/' || ext === '.html'))) {{
        return 'network-first';
    }}
    if (['font', 'style', 'script'].includes(request.destination) ||
        STATIC_EXTENSIONS.includes(ext) ||
        STATIC_HOSTS.includes(url.hostname)) {{
        return 'cache-first';
    }}
    if (request.destination === 'image' || IMAGE_EXTENSIONS.includes(ext)) {{
        return 'stale-while-revalidate';
    }}
    return sameOrigin ? 'network-first' : 'network-only';
}}

function putInCache(cacheName, request, response) {{
    if (!response || !response.ok) {{
        return Promise.resolve();
    }}
    const responseClone = response.clone();
    return caches.open(cacheName).then(cache => cache.put(request, responseClone));
}}

function offlineResponse(request) {{
    if (request.mode === 'navigate' || request.destination === 'document') {{
        return caches.match(OFFLINE_FALLBACK).then(cached => {{
            return cached || new Response(OFFLINE_PAGE, {{
                status: 503,
                headers: {{ 'Content-Type': 'text/html; charset=utf-8' }}
            }});
        }});
    }}
    return Promise.resolve(new Response('Offline', {{
        status: 503,
        statusText: 'Service Unavailable',
        headers: {{ 'Content-Type': 'text/plain' }}
    }}));
}}

function cacheFirst(request) {{
    return caches.match(request).then(cached => {{
        if (cached) {{
            return cached;
        }}
        return fetch(request)
            .then(response => {{
                putInCache(STATIC_CACHE, request, response);
                return response;
            }})
            .catch(() => offlineResponse(request));
    }});
}}

function networkFirst(request) {{
    return fetch(request)
        .then(response => {{
            putInCache(DYNAMIC_CACHE, request, response);
            return response;
        }})
        .catch(() => {{
            return caches.match(request).then(cached => cached || offlineResponse(request));
        }});
}}

function staleWhileRevalidate(event) {{
    const request = event.request;
    return caches.match(request).then(cached => {{
        const revalidate = fetch(request)
            .then(response => putInCache(DYNAMIC_CACHE, request, response).then(() => response))
            .catch(() => {{
                console.log('[SW] Revalidation failed:', request.url);
                return null;
            }});

        if (cached) {{
            // Serve stale copy now, refresh in the background
            event.waitUntil(revalidate);
            return cached;
        }}
        return revalidate.then(response => response || offlineResponse(request));
    }});
}}

function networkOnly(request) {{
    return fetch(request).catch(() => offlineResponse(request));
}}

function checkVersion() {{
    return fetch(`${{VERSION_PATH}}?t=${{Date.now()}}`, {{ cache: 'no-store' }})
        .then(response => response.ok ? response.json() : null)
        .then(data => Boolean(data && data.version && data.version !== SW_VERSION))
        .catch(error => {{
            console.log('[SW] Version check failed:', error);
            return false;
        }});
}}

// Install event - precache the app shell, wait for the client to activate us
self.addEventListener('install', (event) => {{
    console.log('[SW] Installing version', SW_VERSION);
    event.waitUntil(
        caches.open(STATIC_CACHE).then(cache => cache.addAll(PRECACHE_URLS))
    );
}});

// Activate event - delete caches from other versions, notify clients
self.addEventListener('activate', (event) => {{
    console.log('[SW] Activating version', SW_VERSION);
    event.waitUntil(
        caches.keys()
            .then(cacheNames => {{
                return Promise.all(
                    cacheNames
                        .filter(cacheName => cacheName !== STATIC_CACHE && cacheName !== DYNAMIC_CACHE)
                        .map(cacheName => {{
                            console.log('[SW] Deleting old cache:', cacheName);
                            return caches.delete(cacheName);
                        }})
                );
            }})
            .then(() => self.clients.claim())
            .then(() => self.clients.matchAll({{ type: 'window' }}))
            .then(clients => {{
                clients.forEach(client => {{
                    client.postMessage({{ type: 'SW_ACTIVATED', version: SW_VERSION }});
                }});
            }})
    );
}});

self.addEventListener('fetch', (event) => {{
    const request = event.request;

    // Let the browser handle non-GET requests directly
    if (request.method !== 'GET') {{
        return;
    }}

    const url = new URL(request.url);
    const strategy = selectStrategy(request, url);

    if (strategy === 'cache-first') {{
        event.respondWith(cacheFirst(request));
    }} else if (strategy === 'network-first') {{
        event.respondWith(networkFirst(request));
    }} else if (strategy === 'stale-while-revalidate') {{
        event.respondWith(staleWhileRevalidate(event));
    }} else {{
        event.respondWith(networkOnly(request));
    }}
}});

// Handle messages from clients
self.addEventListener('message', (event) => {{
    const data = event.data || {{}};
    if (data.type === 'SKIP_WAITING') {{
        self.skipWaiting();
    }} else if (data.type === 'CHECK_VERSION') {{
        const port = event.ports && event.ports[0];
        event.waitUntil(
            checkVersion().then(hasUpdate => {{
                if (port) {{
                    port.postMessage({{ hasUpdate }});
                }}
            }})
        );
    }}
}});
"""
