"""
Input sanitization gate.

Runs before every handler: refuses JSON bodies that are not objects, rejects
query-operator keys anywhere in the request (``$``-prefixed or dotted keys),
rejects markup in fields where markup is never valid, then strips script and
HTML from every string leaf of the JSON body in place.

Stored data is plain text. Encoding for display belongs to the client.
"""
import re

from flask import request

from spendify.utils.exceptions import ValidationError

SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
EVENT_HANDLER = re.compile(r"""\bon\w+\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]*)""", re.IGNORECASE)
JAVASCRIPT_URI = re.compile(r"javascript\s*:", re.IGNORECASE)
VBSCRIPT_URI = re.compile(r"vbscript\s*:", re.IGNORECASE)
DATA_URI = re.compile(r"data\s*:[^,]*,", re.IGNORECASE)
HTML_TAG = re.compile(r"<[^>]+>")

# fields where any tag syntax is rejected instead of stripped
MARKUP_FORBIDDEN_FIELDS = ("category",)


def strip_xss(value):
    if not isinstance(value, str):
        return value
    value = SCRIPT_BLOCK.sub("", value)
    value = EVENT_HANDLER.sub("", value)
    value = JAVASCRIPT_URI.sub("", value)
    value = VBSCRIPT_URI.sub("", value)
    value = DATA_URI.sub("", value)
    value = HTML_TAG.sub("", value)
    return value.strip()


def is_operator_key(key):
    return isinstance(key, str) and (key.startswith("$") or "." in key)


def guard_operator_keys(value, path="input"):
    """Raise ValidationError if any key at any depth is an operator key."""
    if isinstance(value, list):
        for i, item in enumerate(value):
            guard_operator_keys(item, f"{path}[{i}]")
    elif isinstance(value, dict):
        for key, item in value.items():
            if is_operator_key(key):
                raise ValidationError(
                    f'Invalid input: operator key "{key}" is not allowed in {path}'
                )
            guard_operator_keys(item, f"{path}.{key}")


def reject_markup_fields(body):
    if not isinstance(body, dict):
        return
    for field in MARKUP_FORBIDDEN_FIELDS:
        value = body.get(field)
        if isinstance(value, str) and HTML_TAG.search(value):
            raise ValidationError(f"{field.capitalize()} contains invalid characters")


def deep_sanitize(value):
    """Strip XSS from every string leaf. Containers are modified in place."""
    if isinstance(value, str):
        return strip_xss(value)
    if isinstance(value, list):
        for i, item in enumerate(value):
            value[i] = deep_sanitize(item)
    elif isinstance(value, dict):
        for key, item in value.items():
            value[key] = deep_sanitize(item)
    return value


def sanitize_request():
    for key in request.args.keys():
        if is_operator_key(key):
            raise ValidationError(f'Invalid input: operator key "{key}" is not allowed in query')

    body = request.get_json(silent=True) if request.is_json else None
    if body is None:
        return
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    guard_operator_keys(body, "body")
    reject_markup_fields(body)
    # get_json caches the parsed object, so handlers see the cleaned copy
    deep_sanitize(body)


def init_sanitizer(app):
    app.before_request(sanitize_request)
