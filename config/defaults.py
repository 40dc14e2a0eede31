"""Default pipeline settings."""

DEFAULTS = {
    "max_iterations": 5,
    "target_score": 92,
    "min_improvement": 1.5,
    "samples_per_iteration": 1,
    "llm_retries": 3,
    "llm_timeout": 300,  # seconds per provider call
    "llm_retry_delay": 2,
    "max_tokens": {
        "requirements": 4096,
        "blueprint": 32000,
        "coding": 20000,
        "metrics": 5000,
        "evaluation": 5000,
        "validation": 20000,
    },
    "blob_prefix": "uiforge",
    "blob_root": "generations",
    "store_path": "generations/records.json",
}

DEFAULT_PROVIDER_URL = "https://api.anthropic.com"

DEFAULT_MODELS = {
    "requirementAnalysis": "claude-sonnet-4-5-20250929",
    "uiSpecSynthesis": "claude-sonnet-4-5-20250929",
    "coding": "claude-sonnet-4-5-20250929",
    "evaluation": "claude-sonnet-4-5-20250929",
    "validation": "claude-haiku-4-5-20251001",
}
