"""survey_server — FastAPI REST API for the survey flow SDK.

Exposes survey storage, AI-assisted question generation, form- and
chat-mode flow resolution, submission validation and the YAML survey
library as a stateless HTTP API.
"""
