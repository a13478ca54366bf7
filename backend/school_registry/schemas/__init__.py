"""School Registry Backend: Pydantic Schemas Package"""
