from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bulksms.core.config import get_settings
from bulksms.core.logging import configure_logging
from bulksms.gateway import Gateway


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    gateway = Gateway(settings)
    if settings.DB_AUTO_CREATE:
        gateway.database.create_schema()
    try:
        gateway.reconciler.run_forever()
    except KeyboardInterrupt:
        pass
    finally:
        gateway.shutdown()


if __name__ == "__main__":
    main()
