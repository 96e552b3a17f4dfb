"""Application package for the study planner backend.

`planner.scheduling` holds the pure scheduling and capacity engine; the
remaining modules (models, repositories, services, main) wrap it in a
FastAPI service with SQLModel persistence.
"""
