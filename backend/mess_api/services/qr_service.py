"""
Check-in credentials: building, rendering and parsing the QR payload.
"""

import base64
import json
from io import BytesIO
from typing import Any, Union

import qrcode
from pydantic import ValidationError as PydanticValidationError

from mess_api.core.exceptions import MalformedCredentialError
from mess_api.schemas.checkin import CheckInCredential


def build_credential(credential: CheckInCredential) -> str:
    """Serialize to the compact camelCase JSON embedded in the QR code."""
    return credential.model_dump_json(by_alias=True)


def render_qr(payload: str) -> str:
    """Render ``payload`` as a PNG QR code and return it as a data URL."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def parse_credential(raw: Union[str, dict[str, Any]]) -> CheckInCredential:
    """Parse a scanned payload; anything that is not a credential is malformed."""
    try:
        if isinstance(raw, str):
            data = json.loads(raw)
        else:
            data = raw
        if not isinstance(data, dict):
            raise MalformedCredentialError()
        return CheckInCredential.model_validate(data)
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise MalformedCredentialError(reason=type(e).__name__) from e
