REMOTE_REFERENCE_PREFIXES = ("http://", "https://")

INLINE_REFERENCE_PREFIX = "data:"

OUTPUT_MIME_TYPE = "video/mp4"

MEDIA_EXTENSION = ".mp4"

ENDPOINTS = {
    "getDuration": "POST /get-duration - Get video duration and expected chunks",
    "chunk": "POST /chunk - Split video into chunks",
    "stitch": "POST /stitch - Combine chunks back together",
    "stitchBase64": "POST /stitch-base64 - Stitch and return as base64",
}
