"""Google Drive file download for the content and transcription views."""
