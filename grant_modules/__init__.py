"""
Business modules for Budget BASE.

One package per record kind (grants, budget, engagements, payments,
prefinancing, employee_loans, treasury), each with frozen DTOs in
``models.py``, SQLAlchemy models in ``orm.py`` and a service facade in
``service.py`` that owns its transactions.
"""
