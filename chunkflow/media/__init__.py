"""
ffmpeg/ffprobe orchestration.

- source: resolve URLs, inline payloads and local paths into local files
- probe: frame rate and duration queries
- planner: GOP size and chunk count arithmetic
- segmenter: keyframe-aligned segmenting
- stitcher: stream-copy concatenation
"""
