from __future__ import annotations

from html import escape
from urllib.parse import urlencode

from services.exceptions import PartialMutationError
from services.queue_mode_rules import RoutingMode

SWITCHABLE_MODES = [RoutingMode.NORMAL, RoutingMode.FORCED_BUSINESS_HOURS, RoutingMode.FORCED_AFTER_HOURS]


def render_page(content: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta http-equiv="X-UA-Compatible" content="IE=edge">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Time of Day Routing</title>
  <style>
    body {{ color: #333; font-family: Tahoma, sans-serif; }}
    .container {{ margin-left: 2em; }}
    .container div {{ margin-top: 1em; }}
    .rule, .mode {{ text-decoration: underline; }}
    .error {{ color: #b00020; }}
    button {{ font-size: 1.25em; padding: .25em .5em; }}
  </style>
  <script>
    function save_mode(e, url) {{
      e.innerText = 'Saving...';
      document.querySelectorAll('button').forEach(button => button.disabled = true);
      window.location.href = url;
    }}
  </script>
</head>
<body>
  <div class="container">
    {content}
  </div>
</body>
</html>"""


def status_url(base_path: str, location_name: str, queue_name: str, mode: RoutingMode | None = None) -> str:
    params = {"locationName": location_name, "queueName": queue_name}
    if mode is not None:
        params["mode"] = str(int(mode))
    return f"{base_path}?{urlencode(params)}"


def render_status(status, base_path: str) -> str:
    queue = status.queue
    location_name = queue.get("locationName") or ""
    queue_name = queue.get("name") or ""
    heading = (
        f"{escape(queue_name)} in {escape(location_name)} "
        f"({escape(str(queue.get('phoneNumber') or ''))} / x{escape(str(queue.get('extension') or ''))})"
    )
    buttons = []
    for mode in SWITCHABLE_MODES:
        if mode == status.mode:
            continue
        url = status_url(base_path, location_name, queue_name, mode)
        buttons.append(
            f"<div><button onclick=\"save_mode(this, '{escape(url)}')\">{escape(mode.label)}</button></div>"
        )
    content = (
        f"<div><h1>{heading}</h1></div>\n"
        f"<div><h2>Current Routing Rule <span class=\"rule\">{escape(status.active_rule.label)}</span> is Matching</h2></div>\n"
        f"<div><h2>Current Routing Mode <span class=\"mode\">{escape(status.mode.label)}</span> is Active</h2></div>\n"
        "<div><h3>Switch Mode:</h3></div>\n" + "\n".join(buttons)
    )
    return render_page(content)


def render_error(message: str) -> str:
    return render_page(f"<div class=\"error\">{escape(message)}</div>")


def render_mutation_failure(error: PartialMutationError, back_url: str | None = None) -> str:
    rows = "\n".join(
        f"<li>{escape(item.name or item.rule_id)}: {escape(item.status.value)}"
        + (f" ({escape(item.error)})" if item.error else "")
        + "</li>"
        for item in error.results
    )
    back = f"<div><a href=\"{escape(back_url)}\">Back to current routing</a></div>" if back_url else ""
    content = (
        "<div class=\"error\"><h2>The routing mode change did not complete.</h2></div>\n"
        "<div>Some rules may already have been updated. Rule results:</div>\n"
        f"<div><ul>\n{rows}\n</ul></div>\n{back}"
    )
    return render_page(content)
