"""Plain-text and HTML bodies for every outgoing email.

Bodies are jinja2 templates. ``<name>.html`` sources are autoescaped,
``<name>.txt`` sources are not. Every template can use ``subject``, ``year``,
``app_name``, ``domain`` and ``help_url``; the rest of the keys come from
the job that sends it.
"""

from dataclasses import dataclass

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape


@dataclass(frozen=True)
class EmailTemplate:
    text: str
    html: str


_LAYOUT = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{{ subject }}</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #f9fafb; margin: 0; padding: 20px;">
    <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff; border-radius: 8px; padding: 40px; box-shadow: 0 1px 3px rgba(0,0,0,0.1);">
        <h2 style="color: #111827; margin-top: 0;">{{ subject }}</h2>
        {% block content %}{% endblock %}
        <div style="margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb;">
            <p style="color: #9ca3af; font-size: 13px; margin: 0;">&copy; {{ year }} {{ app_name }}</p>
        </div>
    </div>
</body>
</html>
"""

_BUTTON = """<p style="margin: 30px 0; text-align: center;">
            <a href="{{ action_url }}" style="display: inline-block; padding: 14px 28px; background-color: #2563eb; color: #ffffff !important; text-decoration: none; border-radius: 6px; font-weight: 600; font-size: 16px;">{{ label }}</a>
        </p>
        <p style="color: #6b7280; font-size: 14px;">Or copy and paste this link into your browser:</p>
        <p style="word-break: break-all; color: #2563eb; font-size: 14px;">{{ action_url }}</p>"""


def _html(content: str) -> str:
    return '{% extends "_layout.html" %}{% block content %}' + content + "{% endblock %}"


def _button(label: str) -> str:
    return '{% with label="' + label + '" %}{% include "_button.html" %}{% endwith %}'


TEMPLATES: dict[str, EmailTemplate] = {
    "verify-account": EmailTemplate(
        text="""Hi {{ name }},

Thanks for signing up for {{ app_name }}. Confirm your email address by
opening the link below:
{{ action_url }}

If you didn't create an account, you can safely ignore this email.

-- {{ app_name }}
""",
        html=_html(
            """<p style="color: #374151; line-height: 1.6;">Hi {{ name }},</p>
        <p style="color: #374151; line-height: 1.6;">Thanks for signing up for {{ app_name }}. Confirm your email address to finish creating your account.</p>
        """
            + _button("Verify Account")
        ),
    ),
    "welcome": EmailTemplate(
        text="""Hi {{ name }},

Your email is verified and your {{ app_name }} account is ready.

Questions? Help is available at {{ help_url }}

-- {{ app_name }}
""",
        html=_html(
            """<p style="color: #374151; line-height: 1.6;">Hi {{ name }},</p>
        <p style="color: #374151; line-height: 1.6;">Your email is verified and your {{ app_name }} account is ready.</p>
        <p style="color: #374151; line-height: 1.6;">Questions? Help is available at <a href="{{ help_url }}">{{ help_url }}</a>.</p>"""
        ),
    ),
    "reset-password": EmailTemplate(
        text="""Hi {{ name }},

You requested a password reset for your {{ app_name }} account.

Open the link below to choose a new password:
{{ action_url }}

If you didn't request this, you can safely ignore this email.

-- {{ app_name }}
""",
        html=_html(
            """<p style="color: #374151; line-height: 1.6;">You requested a password reset for your {{ app_name }} account.</p>
        """
            + _button("Reset Password")
            + """
        <p style="color: #9ca3af; font-size: 13px;">If you didn't request this, you can safely ignore this email.</p>"""
        ),
    ),
    "password-was-reset": EmailTemplate(
        text="""Hello,

The password for your {{ app_name }} account was just changed.

If this wasn't you, reset your password right away and contact us at
{{ help_url }}

-- {{ app_name }}
""",
        html=_html(
            """<p style="color: #374151; line-height: 1.6;">The password for your {{ app_name }} account was just changed.</p>
        <p style="color: #374151; line-height: 1.6;">If this wasn't you, reset your password right away and contact us at <a href="{{ help_url }}">{{ help_url }}</a>.</p>"""
        ),
    ),
    "odd-registration-attempt": EmailTemplate(
        text="""Hi {{ name }},

Someone tried to create a {{ app_name }} account with this email address,
which already has one. If it was you and you forgot your password, you
can reset it here:
{{ action_url }}

Otherwise no action is needed.

-- {{ app_name }}
""",
        html=_html(
            """<p style="color: #374151; line-height: 1.6;">Hi {{ name }},</p>
        <p style="color: #374151; line-height: 1.6;">Someone tried to create a {{ app_name }} account with this email address, which already has one. If it was you and you forgot your password, you can reset it.</p>
        """
            + _button("Reset Password")
            + """
        <p style="color: #9ca3af; font-size: 13px;">Otherwise no action is needed.</p>"""
        ),
    ),
}


def _sources() -> dict[str, str]:
    sources = {"_layout.html": _LAYOUT, "_button.html": _BUTTON}
    for name, template in TEMPLATES.items():
        sources[f"{name}.txt"] = template.text
        sources[f"{name}.html"] = template.html
    return sources


template_env = Environment(
    loader=DictLoader(_sources()),
    autoescape=select_autoescape(["html", "xml"]),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)
