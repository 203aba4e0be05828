"""
Upload AI: upload a video's audio track, transcribe it with a speech-to-text
service and generate YouTube titles and descriptions from the transcription.
"""

__version__ = "1.0.0"
