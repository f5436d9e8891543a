"""
YouTube Dubbing Pipeline - dub a YouTube video into another language.

A sequential pipeline for:
- Fetching time-coded YouTube transcripts with retries and fallbacks
- Translating transcript segments under a strict rate limit
- Synthesizing speech per segment (gTTS or OpenAI TTS)
- Rebuilding a timestamp-aligned audio track
- Downloading the source video and muxing the dubbed audio onto it
"""

__version__ = "0.1.0"
