import json

from django import template

register = template.Library()


@register.filter(name="add_classes")
def add_classes(field, css):
    """Return a field rendered with extra CSS classes appended to the widget.

    Usage: {{ form.field|add_classes:"input input-bordered w-full" }}
    """
    widget = field.field.widget
    classes = widget.attrs.get("class", "")
    merged = (classes + " " + css).strip()
    return field.as_widget(attrs={**widget.attrs, "class": merged})


@register.inclusion_tag("questionnaires/controls/_control.html", takes_context=True)
def render_control(context, presentation, mode="preview"):
    """Render one ``Presentation`` with its widget template.

    ``mode`` is ``"preview"`` (inputs post events) or ``"design"`` (inert).
    """
    return {
        "p": presentation,
        "template_name": presentation.template_name,
        "interactive": mode == "preview",
        "questionnaire": context.get("questionnaire"),
        "csrf_token": context.get("csrf_token"),
    }


@register.filter(name="option_lines")
def option_lines(value):
    """Comma-joined options as one option per line for a textarea."""
    if not value:
        return ""
    return "\n".join(part.strip() for part in str(value).split(","))


@register.filter(name="status_badge")
def status_badge(status):
    return {
        "completed": "badge-success",
        "partial": "badge-warning",
        "empty": "badge-ghost",
    }.get(str(status), "badge-ghost")


@register.filter(name="rules_json")
def rules_json(value):
    if not value:
        return ""
    return json.dumps(value, indent=2)
