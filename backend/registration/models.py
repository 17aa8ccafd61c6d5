"""Model registry for the registration app.

Concrete models live in the ``domain_*`` modules; they are re-exported here so
Django's app loader and migrations find them under ``registration.models``.
"""
from .domain_actors import *  # noqa: F401,F403
from .domain_application import *  # noqa: F401,F403
from .domain_documents import *  # noqa: F401,F403
from .domain_inspection import *  # noqa: F401,F403
from .domain_logs import *  # noqa: F401,F403
from .domain_payments import *  # noqa: F401,F403
