"""Assistant orchestration core.

This package contains the action lifecycle (parsing, gating, execution)
and the document context resolver that tracks which repository
documents a conversation is about.

Subpackages:
    models: Action, conversation and document context models.
    actions: State machine, confirmation gate, parser, executor.
    context: Reference extraction, resolver, navigation URLs.
"""
