"""HTML pages sent back to the browser during LTI flows."""

from __future__ import annotations

from jinja2 import DictLoader, Environment, StrictUndefined

_TEMPLATES = {
    # Shown instead of the redirect when a launch sets custom_test=true
    "tool_redirect.html": """\
<html><body>Welcome to LTI; you are going to {{ redirect_url }}<br>
<a href="{{ redirect_url }}">continue...</a></body></html>
""",
    # Auto-submitting OAuth-signed POST back to the tool consumer.  The
    # submit button is one of the signed fields, so the script re-adds it
    # as a hidden input before submitting programmatically.
    "launch_form.html": """\
<!doctype html>
<html><head><meta charset="utf-8"><title>Returning to your course</title></head>
<body>
<div id="ltiLaunchFormSubmitArea">
<form action="{{ url }}" name="ltiLaunchForm" id="ltiLaunchForm" method="post"
      enctype="application/x-www-form-urlencoded" accept-charset="utf-8">
{% for key, value in fields %}  <input type="hidden" name="{{ key }}" value="{{ value }}">
{% endfor %}  <input type="submit" name="{{ submit_name }}" value="{{ submit_label }}">
</form>
</div>
{% if test_mode %}
<pre>
<b>Endpoint</b>
{{ url }}
<b>Parameters:</b>
{% for key, value in parameters %}{{ key }}={{ value }}
{% endfor %}</pre>
{% else %}
<script type="text/javascript">
  document.getElementById("ltiLaunchFormSubmitArea").style.display = "none";
  var submitField = document.createElement("input");
  submitField.setAttribute("type", "hidden");
  submitField.setAttribute("name", {{ submit_name|tojson }});
  submitField.setAttribute("value", {{ submit_label|tojson }});
  document.getElementById("ltiLaunchForm").appendChild(submitField);
  document.ltiLaunchForm.submit();
</script>
{% endif %}
</body></html>
""",
}

templates = Environment(
    loader=DictLoader(_TEMPLATES),
    autoescape=True,
    undefined=StrictUndefined,
)


def render(template_name: str, **context) -> str:
    return templates.get_template(template_name).render(**context)
