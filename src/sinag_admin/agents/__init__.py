"""Admin action orchestration: authorization, submission, confirmation."""
