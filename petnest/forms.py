"""Request-body validation shared by every JSON endpoint.

Forms are plain Flask-WTF forms with CSRF switched off; Flask-WTF already
feeds them from JSON, urlencoded or multipart bodies.
"""
from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import Field
from wtforms.validators import InputRequired, StopValidation
from wtforms.widgets import TextInput

from .errors import ValidationFailed

DATETIME_FORMATS = ["%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M"]


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

        def wrap_formdata(self, form, formdata):
            formdata = super().wrap_formdata(form, formdata)
            if formdata is None or not request.is_json:
                return formdata
            # JSON null means "not sent"
            return ImmutableMultiDict(
                [(k, v) for k, v in formdata.items(multi=True) if v is not None]
            )

    def validate_or_raise(self) -> "ApiForm":
        if not self.validate_on_submit():
            raise ValidationFailed("Invalid input.", payload={"fields": self.errors})
        return self

    def provided(self) -> dict:
        """Only the fields present in the request, for partial updates."""
        return {
            name: field.data
            for name, field in self._fields.items()
            if getattr(field, "raw_data", None)
        }


class Present(InputRequired):
    """InputRequired that lets JSON falsy values such as 0 or false through."""

    def __call__(self, form, field):
        if field.raw_data and field.raw_data[0] not in (None, ""):
            return
        super().__call__(form, field)


class NotBlank:
    """For partial updates: the field may be left out, but not sent empty.

    Goes before ``Optional()``, which would otherwise swallow the blank value.
    """

    def __init__(self, message=None):
        self.message = message or "This field cannot be blank."

    def __call__(self, form, field):
        if field.raw_data and isinstance(field.raw_data[0], str) and not field.raw_data[0].strip():
            field.errors[:] = []
            raise StopValidation(self.message)


class TagListField(Field):
    """Accepts ``["a", "b"]`` from JSON or ``"a, b"`` from a form."""

    widget = TextInput()

    def _value(self):
        return ", ".join(self.data or [])

    def process_formdata(self, valuelist):
        tags = []
        for raw in valuelist:
            tags.extend(str(raw).split(","))
        seen = []
        for t in tags:
            t = t.strip().lower()
            if t and t not in seen:
                seen.append(t)
        self.data = seen


def clean_text(value):
    if value is None:
        return None
    return str(value).strip() or None
