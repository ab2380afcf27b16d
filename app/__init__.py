"""
Audio Transcript Service - Audio Upload Transcription Microservice

A FastAPI-based microservice that transcribes uploaded audio with the
OpenAI speech-to-text API, splitting large files into chunks, and returns
the transcript as a PDF document.
"""

__version__ = "1.0.0"
