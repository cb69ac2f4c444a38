"""
Scheduling engine package: pattern resolution, capacity, strategies,
fallback and the run orchestrator (scheduler.engine.SchedulingEngine).
"""
