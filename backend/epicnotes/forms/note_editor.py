"""
Epic Notes — Note Editor Rule Set
==================================

What:  The one definition of what a valid note edit is.
Why:   The edit form is validated twice: in the browser before submit (fast
       feedback once the script has loaded) and on the server (authoritative,
       and the only check when scripts are off). Both read the rules below,
       so they cannot drift apart.
How:   NOTE_EDITOR_RULES lists the fields in document order.
         - validate_submission() evaluates them on the server
         - rules_as_client_config() serializes them (messages included) for
           static/note-editor.js
         - the template derives `required` / `maxlength` / `accept`
           attributes from them

Rules:
    title       required, at most 1000 characters
    content     required, at most 10000 characters
    image.file  optional, at most 3 MiB, a JPEG, PNG, GIF or WebP image

Text length is counted in code points after folding CRLF line breaks to LF,
which is what the browser counts while the user types.
"""

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field

FORM_ID = "note-editor"

TITLE_MAX_LENGTH = 1000
CONTENT_MAX_LENGTH = 10000
MAX_UPLOAD_SIZE = 1024 * 1024 * 3  # 3 MiB

# Image MIME types (as detected from the bytes) mapped to their extensions.
# The first extension is the one used when the file is stored.
ACCEPTED_IMAGE_TYPES: Dict[str, Tuple[str, ...]] = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/gif": (".gif",),
    "image/webp": (".webp",),
}


def normalize_newlines(text: str) -> str:
    """Fold CRLF and lone CR line breaks to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


@dataclass(frozen=True)
class FieldRule:
    """
    Constraints for one form field.

    Text fields use `required` / `max_length` (characters). File fields use
    `max_bytes` and `accept`; their value is the upload size, or None when no
    file was chosen.
    """

    name: str
    label: str
    input_id: str
    required: bool = False
    max_length: Optional[int] = None
    max_bytes: Optional[int] = None
    accept: Optional[Tuple[str, ...]] = None

    @property
    def error_id(self) -> str:
        return f"{self.input_id}-error"

    @property
    def is_file(self) -> bool:
        return self.max_bytes is not None or bool(self.accept)

    @property
    def extensions(self) -> Tuple[str, ...]:
        """Filename extensions allowed for the accepted types."""
        if not self.accept:
            return ()
        return tuple(ext for mime in self.accept for ext in ACCEPTED_IMAGE_TYPES.get(mime, ()))

    def messages(self) -> Dict[str, str]:
        messages = {}
        if self.required:
            messages["required"] = f"{self.label} is Required"
        if self.max_length is not None:
            messages["tooLong"] = f"{self.label} must be {self.max_length} characters or less"
        if self.max_bytes is not None:
            messages["tooLarge"] = (
                f"{self.label} size must be {self.max_bytes // (1024 * 1024)}MB or less"
            )
        if self.accept:
            messages["notAccepted"] = f"{self.label} must be a JPEG, PNG, GIF or WebP file"
        return messages

    def check(
        self,
        value: Union[str, int, None],
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> List[str]:
        """
        Return this field's error messages for `value`, in rule order.

        For a file field `content_type` is the type detected from the file's
        bytes and `filename` the name the client sent. Neither is looked at
        when no file was chosen.
        """
        messages = self.messages()
        errors: List[str] = []
        if self.is_file:
            if value is None:
                return errors
            if self.max_bytes is not None and int(value) > self.max_bytes:
                errors.append(messages["tooLarge"])
            if self.accept and not self._accepts(content_type, filename):
                errors.append(messages["notAccepted"])
            return errors

        text = normalize_newlines(value) if isinstance(value, str) else ""
        if self.required and text == "":
            errors.append(messages["required"])
        if self.max_length is not None and len(text) > self.max_length:
            errors.append(messages["tooLong"])
        return errors

    def _accepts(self, content_type: Optional[str], filename: Optional[str]) -> bool:
        if content_type not in (self.accept or ()):
            return False
        # A name without an extension (pasted blobs) is fine, a wrong one is not
        suffix = PurePosixPath(filename or "").suffix.lower()
        return not suffix or suffix in self.extensions


NOTE_EDITOR_RULES = (
    FieldRule(
        name="title",
        label="Title",
        input_id="note-title",
        required=True,
        max_length=TITLE_MAX_LENGTH,
    ),
    FieldRule(
        name="content",
        label="Content",
        input_id="note-content",
        required=True,
        max_length=CONTENT_MAX_LENGTH,
    ),
    FieldRule(
        name="image.file",
        label="Image",
        input_id="note-image-file",
        max_bytes=MAX_UPLOAD_SIZE,
        accept=tuple(ACCEPTED_IMAGE_TYPES),
    ),
)

RULES_BY_NAME = {rule.name: rule for rule in NOTE_EDITOR_RULES}


class Submission(BaseModel):
    """
    One validation attempt: what was submitted and what is wrong with it.

    Created fresh per POST and discarded once the response is rendered.
    `field_values` echoes text inputs back into the form so nothing the user
    typed is lost on a 400.
    """

    field_values: Dict[str, str] = Field(default_factory=dict)
    field_errors: Dict[str, List[str]] = Field(default_factory=dict)
    form_errors: List[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.form_errors) or any(self.field_errors.values())

    def errors_for(self, name: str) -> List[str]:
        return self.field_errors.get(name, [])

    def error_id(self, name: str) -> Optional[str]:
        """id of the field's error list, or None when it has no errors."""
        if not self.errors_for(name):
            return None
        return RULES_BY_NAME[name].error_id

    @property
    def form_error_id(self) -> Optional[str]:
        return f"{FORM_ID}-error" if self.form_errors else None

    def focus_target(self) -> Optional[str]:
        """
        Element id that should receive focus after a failed submit.

        First invalid field in document order; the form itself when only
        form-level errors exist; None when the submission is valid.
        """
        for rule in NOTE_EDITOR_RULES:
            if self.errors_for(rule.name):
                return rule.input_id
        if self.form_errors:
            return FORM_ID
        return None


def validate_submission(
    values: Mapping[str, Optional[str]],
    image_size: Optional[int] = None,
    image_type: Optional[str] = None,
    image_filename: Optional[str] = None,
) -> Submission:
    """
    Authoritative server-side check of one edit submission.

    Args:
        values:         Text fields as submitted (missing fields may be None)
        image_size:     Byte size of the uploaded file, None when none was chosen
        image_type:     MIME type detected from the uploaded bytes
        image_filename: Filename the client sent with the upload

    Returns:
        Submission with an (possibly empty) error list for every rule.
        Text values are echoed back with line breaks folded to LF.
    """
    submission = Submission(
        field_values={
            name: normalize_newlines(value)
            for name, value in values.items()
            if isinstance(value, str)
        }
    )
    for rule in NOTE_EDITOR_RULES:
        if rule.is_file:
            errors = rule.check(image_size, content_type=image_type, filename=image_filename)
        else:
            errors = rule.check(values.get(rule.name))
        submission.field_errors[rule.name] = errors
    return submission


def rules_as_client_config() -> Dict[str, Any]:
    """
    The rule set as JSON-ready data for the browser pre-check.

    Messages are rendered here, not in JavaScript, so both sides show the
    exact same text.
    """
    return {
        "formId": FORM_ID,
        "fields": [
            {
                "name": rule.name,
                "inputId": rule.input_id,
                "errorId": rule.error_id,
                "required": rule.required,
                "maxLength": rule.max_length,
                "maxBytes": rule.max_bytes,
                "accept": list(rule.accept or ()),
                "extensions": list(rule.extensions),
                "messages": rule.messages(),
            }
            for rule in NOTE_EDITOR_RULES
        ],
    }
