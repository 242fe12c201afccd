"""Django settings for the file-share server.

Settings are split into components under `server/settings/components/`;
values come from `config/.env` or the environment through decouple.
"""

from server.settings.components.api import *  # noqa: F403
from server.settings.components.common import *  # noqa: F403
from server.settings.components.files import *  # noqa: F403
from server.settings.components.logging import *  # noqa: F403
from server.settings.components.storages import *  # noqa: F403
