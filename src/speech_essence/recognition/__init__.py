"""
Speech recognition for speech-essence.

Wraps the Vosk engine behind a small recognizer contract and drives one
recognizer per audio channel.
"""
