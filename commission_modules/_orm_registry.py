"""
Module ORM Registry (``commission_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` holds its table before tables are created.  The kernel's
``create_tables()`` calls ``import_all_orm_models()`` lazily.

Architecture position
---------------------
**Modules layer** -- utility.  Imports sibling ``commission_modules``
packages and ``commission_kernel.db.engine`` (allowed: modules -> kernel).
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``commission_modules.*.orm`` module.

    Commission requests are registered before draws and overrides, whose
    tables reference ``commission_requests.id``.  Idempotent.
    """
    import commission_kernel.models  # noqa: F401
    # fmt: off
    import commission_modules.commissions.orm  # noqa: F401
    import commission_modules.draws.orm  # noqa: F401
    import commission_modules.overrides.orm  # noqa: F401
    # fmt: on


def create_all_tables() -> None:
    """Create kernel and module tables.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from commission_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables()
