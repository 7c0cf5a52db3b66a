from .models import RequestEntity, TransformRequest, UIMessage, UIMessageType
from .xml_codec import decode_request, encode_exception, encode_response

__all__ = [
    "RequestEntity",
    "TransformRequest",
    "UIMessage",
    "UIMessageType",
    "decode_request",
    "encode_exception",
    "encode_response",
]
