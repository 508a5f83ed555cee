# =============================================================================
# File: singlewindow/messaging/__init__.py
# Description: Segment-delimited customs message codec (CUSDEC / CUSRES)
# =============================================================================
# EMPTY - use direct imports:
#   from singlewindow.messaging.segment_codec import encode_segment, decode_segment
#   from singlewindow.messaging.message_codec import encode_message, decode_message
