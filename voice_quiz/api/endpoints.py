"""Lecture-to-quiz API endpoints, relative to settings.API_BASE_URL."""

LOGIN = "/auth/login"
SIGNUP = "/auth/signup"
HISTORY = "/history"
STATISTICS = "/statistics"
QUIZ = "/quiz/{quiz_id}"
UPLOAD = "/upload"
TRANSCRIBE = "/transcribe"
GENERATE_QUIZ = "/generate-quiz"
EXPORT_PDF = "/export-pdf"

# Default headers for JSON requests
DEFAULT_HEADERS = {
    "Accept": "application/json",
}
