"""Content extraction steps."""

from __future__ import annotations

from typing import Optional

from ..collaborators.base import ContentExtractor
from ..constants import FILE_CONTENT_KEY, URL_CONTENT_KEY
from ..contracts import ExtractFileConfig, ExtractUrlConfig, StepKind
from ..templating import resolve
from .base import StepCall, StepExecutor, StepResult


class ExtractUrlExecutor(StepExecutor[ExtractUrlConfig]):
    kind = StepKind.EXTRACT_URL
    default_output_key = URL_CONTENT_KEY

    def __init__(self, extractor: Optional[ContentExtractor]) -> None:
        self._extractor = extractor

    async def execute(self, call: StepCall[ExtractUrlConfig]) -> StepResult:
        extractor = self.require(self._extractor, "content extractor")
        url = resolve(call.config.url, call.data)
        content = await extractor.extract_from_url(url)
        return self.result(call.config, content)


class ExtractFileExecutor(StepExecutor[ExtractFileConfig]):
    kind = StepKind.EXTRACT_FILE
    default_output_key = FILE_CONTENT_KEY

    def __init__(self, extractor: Optional[ContentExtractor]) -> None:
        self._extractor = extractor

    async def execute(self, call: StepCall[ExtractFileConfig]) -> StepResult:
        extractor = self.require(self._extractor, "content extractor")
        path = resolve(call.config.file_path, call.data)
        content = await extractor.extract_from_file(path)
        return self.result(call.config, content)
