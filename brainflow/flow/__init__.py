"""Step flows (onboarding and similar wizards).

A flow is an immutable list of steps walked by a `StepSequencer`; the
sequencer owns position, per-step readiness, and the flow's terminal phase.
"""
