"""Survey flow constants shared across the SDK.

These values are referenced by the tree loader, the evaluator, the flow
engine and the submission validator.

Timeouts and the default generation size can be overridden via environment
variables so that deployments can tune external-service behaviour without
code changes.
"""

import os

# Question types whose answers must match one of the question's options.
CHOICE_TYPES: set[str] = {"multiple-choice", "multiple-choice-multi"}

# Question types that accept several selections (answer is a list).
MULTI_TYPES: set[str] = {"multiple-choice-multi"}

# yes-no questions carry these implicit options instead of stored ones.
YES_NO_OPTIONS: list[str] = ["Yes", "No"]

# Seconds to wait for a should-ask / answer-validation judgment before
# falling back to the permissive default.
# Overridable via JUDGMENT_TIMEOUT_SECONDS env var.
JUDGMENT_TIMEOUT_SECONDS = float(os.getenv("JUDGMENT_TIMEOUT_SECONDS", "10"))

# Seconds to wait for question generation before returning no questions.
# Overridable via GENERATION_TIMEOUT_SECONDS env var.
GENERATION_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "30"))

# Number of questions requested from the generator when the caller omits it.
DEFAULT_QUESTION_COUNT = int(os.getenv("DEFAULT_QUESTION_COUNT", "5"))

# Upper bound on how many times an iterative question repeats, whatever the
# source answer says.
# Overridable via MAX_ITERATIONS env var.
MAX_ITERATIONS = int(os.getenv("MAX_ITERATIONS", "50"))

# --- Validation messages surfaced next to the offending question ---
REQUIRED_MESSAGE = "This question is required."
INVALID_NUMBER_MESSAGE = "Please enter a valid number."
INVALID_OPTION_MESSAGE = "Please choose one of the available options."
INVALID_ANSWER_MESSAGE = "This answer seems invalid."

# Separator used when a list answer is flattened into conversational history.
HISTORY_SEPARATOR = ", "
