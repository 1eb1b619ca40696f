"""Run the EHO pack service: ``python -m ehopack.service``."""
import os

import uvicorn

from .. import config


def main() -> None:
    uvicorn.run(
        "ehopack.service.main:app",
        host=os.getenv("EHO_HOST", "0.0.0.0"),
        port=int(os.getenv("EHO_PORT", "8000")),
        log_level=config.EHO_LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
