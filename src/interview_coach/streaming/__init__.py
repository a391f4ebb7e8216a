from interview_coach.streaming.decoder import (
    StreamingResponseDecoder,
    StreamResult,
    decode_line,
    extract_content,
    iter_fragments,
    raise_for_stream_status,
)

__all__ = [
    "StreamingResponseDecoder",
    "StreamResult",
    "decode_line",
    "extract_content",
    "iter_fragments",
    "raise_for_stream_status",
]
