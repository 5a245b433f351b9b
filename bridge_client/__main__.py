import sys

from loguru import logger

from bridge_client.actions.export import (
    ExportAccountSummariesAction,
    ExportUploadsAction,
)

ACTIONS = {
    "export-accounts": ExportAccountSummariesAction,
    "export-uploads": ExportUploadsAction,
}


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv

    if len(argv) != 1 or argv[0] not in ACTIONS:
        logger.error(f"Usage: python -m bridge_client [{'|'.join(ACTIONS)}]")
        exit(1)

    ACTIONS[argv[0]]().run()


if __name__ == "__main__":
    main()
