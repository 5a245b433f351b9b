import datetime
from typing import IO

from pydantic import BaseModel

from bridge_client.actions import ScanAction
from bridge_client.exceptions import FetchError


class ExportAction(ScanAction):
    """
    Writes every record of a collection as one JSON line.
    """

    default_output = "export.jsonl"

    class Options(ScanAction.Options):
        def __init__(self):
            super().__init__()

            self.OUTPUT = self._env("BRIDGE_OUTPUT")

    options: Options  # type: ignore

    def get_iterator(self):
        raise NotImplementedError

    def write_record(self, f: IO, record: BaseModel) -> str:
        f.write(record.model_dump_json(by_alias=True, exclude_none=True) + "\n")
        return "exported"

    def run(self, *args, **kwargs) -> None:
        output = self.options.OUTPUT or self.default_output

        self.logger.info(f"Exporting to {output}")

        try:
            iterator = self.get_iterator()
        except FetchError:
            self.logger.exception("Failed to fetch the first page")
            exit(1)

        with open(output, "w") as f:
            self.scan(iterator, lambda record: self.write_record(f, record))


class ExportAccountSummariesAction(ExportAction):
    default_output = "accounts.jsonl"

    def get_iterator(self):
        return self.bridge_client.get_account_summaries(
            self.options.APP_ID,
            page_size=self.options.PAGE_SIZE,
            rate_limit=self.options.RATE_LIMIT,
        )


class ExportUploadsAction(ExportAction):
    default_output = "uploads.jsonl"

    class Options(ExportAction.Options):
        def _parse_time(self, name: str, value: str) -> datetime.datetime:
            try:
                parsed = datetime.datetime.fromisoformat(value)
            except ValueError:
                self.logger.error(f"{name} is not an ISO 8601 time: {value!r}")
                exit(1)

            # times without an offset are UTC
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=datetime.timezone.utc)

            return parsed

        def __init__(self):
            super().__init__()

            end_time = self._env("BRIDGE_END_TIME")
            self.END_TIME = (
                self._parse_time("BRIDGE_END_TIME", end_time)
                if end_time
                else datetime.datetime.now(datetime.timezone.utc)
            )

            start_time = self._env("BRIDGE_START_TIME")
            self.START_TIME = (
                self._parse_time("BRIDGE_START_TIME", start_time)
                if start_time
                else self.END_TIME - datetime.timedelta(days=1)
            )

            if self.START_TIME >= self.END_TIME:
                self.logger.error(
                    f"BRIDGE_START_TIME ({self.START_TIME}) must be before BRIDGE_END_TIME ({self.END_TIME})"
                )
                exit(1)

    options: Options  # type: ignore

    def get_iterator(self):
        return self.bridge_client.get_uploads(
            self.options.APP_ID,
            self.options.START_TIME,
            self.options.END_TIME,
            page_size=self.options.PAGE_SIZE,
            rate_limit=self.options.RATE_LIMIT,
        )


__all__ = ["ExportAccountSummariesAction", "ExportUploadsAction"]
