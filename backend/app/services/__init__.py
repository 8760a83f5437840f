"""Service layer.

Use-case services live in sub-packages (``auth``, ``profile``, ``addresses``,
``cart``, ``orders``); shared primitives, errors and ports live in
``app.services._shared``. Import services from their modules directly so the
ports stay importable from infrastructure code without pulling in the Unit of
Work.
"""
