"""AI module for the Personal Curator.

This module turns a content history into domain profiles with the help of
Google's Gemini model. The client.py module is the SOLE interface to the
Gemini API; no other file should import google-genai.

Exports:
    - AnalysisOrchestrator: Runs every domain analysis and merges the bundle
    - create_orchestrator: Factory wiring client, cache and config
    - GeminiClient / get_client: Production model client
    - ResponseParser: Model text to typed profiles
    - FallbackSynthesizer: Local profiles when the model path fails
    - build_prompt / build_comment_prompt: Prompt construction
    - Exception hierarchy for typed error handling
"""

from curator.ai.client import (
    # Client
    GenerativeModelClient,
    GeminiClient,
    get_client,
    # Exceptions
    AIClientError,
    AIUnavailableError,
    AITransportError,
    AIRateLimitError,
    AITimeoutError,
    AIServerError,
    AIAuthenticationError,
    AIBadRequestError,
    ModelNotAvailableError,
    ContentBlockedError,
)
from curator.ai.comments import plan_comment_styles
from curator.ai.fallback import FallbackSynthesizer
from curator.ai.orchestrator import (
    ANALYSIS_GRAPH,
    AnalysisOrchestrator,
    AnalysisProgress,
    DomainTask,
    create_orchestrator,
    detect_milestones,
    execution_levels,
)
from curator.ai.parser import ResponseParser
from curator.ai.prompts import (
    PromptCategory,
    PromptTemplate,
    build_comment_prompt,
    build_prompt,
    get_prompt,
    list_prompts,
    register_prompt,
)

__all__ = [
    # Orchestration
    "ANALYSIS_GRAPH",
    "AnalysisOrchestrator",
    "AnalysisProgress",
    "DomainTask",
    "create_orchestrator",
    "detect_milestones",
    "execution_levels",
    # Client
    "GenerativeModelClient",
    "GeminiClient",
    "get_client",
    # Parsing and synthesis
    "ResponseParser",
    "FallbackSynthesizer",
    "plan_comment_styles",
    # Prompts
    "PromptCategory",
    "PromptTemplate",
    "build_comment_prompt",
    "build_prompt",
    "get_prompt",
    "list_prompts",
    "register_prompt",
    # Exceptions
    "AIClientError",
    "AIUnavailableError",
    "AITransportError",
    "AIRateLimitError",
    "AITimeoutError",
    "AIServerError",
    "AIAuthenticationError",
    "AIBadRequestError",
    "ModelNotAvailableError",
    "ContentBlockedError",
]
