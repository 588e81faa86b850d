"""Errors raised by the realtime voice stack."""


class SessionBusyError(RuntimeError):
	"""A voice session is already open; only one may run at a time."""


class MicrophoneUnavailableError(RuntimeError):
	"""The microphone could not be opened (permission denied or no device)."""
