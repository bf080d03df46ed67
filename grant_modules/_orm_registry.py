"""
Module ORM Registry (``grant_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` contains its table definition before tables are created.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by
``grant_kernel.db.engine.create_tables()``.

Usage
-----
``create_tables()`` in the kernel and ``tests/conftest.py`` both go through
``import_all_orm_models()``.
"""


def import_all_orm_models() -> None:
    """Import every ``grant_modules.*.orm`` module plus the services ORM.

    Idempotent -- repeated calls are harmless.
    """
    # fmt: off
    import grant_modules.grants.orm  # noqa: F401
    import grant_modules.budget.orm  # noqa: F401
    import grant_modules.treasury.orm  # noqa: F401
    import grant_modules.engagements.orm  # noqa: F401
    import grant_modules.payments.orm  # noqa: F401
    import grant_modules.prefinancing.orm  # noqa: F401
    import grant_modules.employee_loans.orm  # noqa: F401
    import grant_services.orm  # noqa: F401  # app_settings
    # fmt: on
