"""Meeting and video transcription.

Two engines behind the transcribe-video function: the hosted speech-to-text
provider (with speaker diarization) and a local Whisper pipeline held
behind a ModelHandle so the model is loaded once per process.
"""
