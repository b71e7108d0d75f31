"""Live reload — client script and its injection into HTML responses.

The injected script opens one ``EventSource`` per tab on the reload
endpoint.  On every ``flightdeck:reload`` event it reloads the page; when the
connection drops (server restarted, rebuild in progress) it reloads after a
short delay, which picks up new content naturally.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chirp.http.request import Request
    from chirp.http.response import Response, SSEResponse, StreamingResponse
    from chirp.middleware.protocol import Next

    type AnyResponse = Response | StreamingResponse | SSEResponse


RELOAD_ENDPOINT = "/__flightdeck/reload"
STATS_ENDPOINT = "/__flightdeck/stats"
RELOAD_EVENT = "flightdeck:reload"

# Attribute marking the injected tag; injection is skipped when present.
SCRIPT_MARKER = "data-flightdeck-reload"

RELOAD_SCRIPT = f"""\
<script {SCRIPT_MARKER}>
(function() {{
  var src = new EventSource('{RELOAD_ENDPOINT}');
  src.addEventListener('{RELOAD_EVENT}', function() {{
    location.reload();
  }});
  src.onerror = function() {{
    src.close();
    setTimeout(function() {{ location.reload(); }}, 1000);
  }};
}})();
</script>
"""


def inject_reload_script[T: (str, bytes)](html: T) -> T:
    """Insert the reload script before ``</body>`` (or ``</html>``, or at the end).

    Bytes are edited as bytes; the script is ASCII, so the page keeps
    whatever encoding it was written in.
    """
    if isinstance(html, bytes):
        script, marker, body_tag, html_tag = (
            s.encode("ascii") for s in (RELOAD_SCRIPT, SCRIPT_MARKER, "</body>", "</html>")
        )
    else:
        script, marker, body_tag, html_tag = RELOAD_SCRIPT, SCRIPT_MARKER, "</body>", "</html>"
    if marker in html:
        return html
    if body_tag in html:
        return html.replace(body_tag, script + body_tag, 1)
    if html_tag in html:
        return html.replace(html_tag, script + html_tag, 1)
    return html + script


async def livereload_middleware(request: Request, next: Next) -> AnyResponse:
    """Chirp middleware that adds the reload script to HTML responses.

    Streaming and SSE responses have no ``body`` and pass through untouched.
    """
    response = await next(request)

    if not hasattr(response, "body") or not hasattr(response, "content_type"):
        return response
    if "text/html" not in (response.content_type or ""):
        return response

    if not isinstance(response.body, str | bytes):
        return response

    return replace(response, body=inject_reload_script(response.body))
