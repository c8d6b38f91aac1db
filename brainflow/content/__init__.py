"""Typed game content: the closed set of variants and their validator.

Everything that reaches a flow or a session passes through `validate_content`
first; nothing downstream re-checks shapes.
"""
