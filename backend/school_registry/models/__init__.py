"""School Registry Backend: ORM Models Package"""
