from panel.models.base import Base  # noqa: F401

from panel.models.user import User  # noqa: F401
from panel.models.api_key import ApiKey  # noqa: F401
from panel.models.document import Document  # noqa: F401
