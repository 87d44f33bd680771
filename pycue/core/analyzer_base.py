"""
Analyzer base class for pycue.

Template method shared by analyzers over a sample series: timing, debug
logging and wrapping of unexpected failures into AnalysisError.
"""

import logging
import time
from abc import abstractmethod
from typing import Generic, TypeVar

from pycue.core.models import CueConfig, SampleSeries
from pycue.utils.errors import AnalysisError, CueError

# Type variable for result types
T = TypeVar('T')


class BaseAnalyzer(Generic[T]):
    """
    Base class for analyzers of a SampleSeries.

    Subclasses implement _analyze_impl(); analyze() provides the template.
    """

    def __init__(self, name: str, version: str):
        self._name = name
        self._version = version
        self.logger = logging.getLogger(f"pycue.analyzer.{name}")

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    def analyze(self, series: SampleSeries, config: CueConfig) -> T:
        """
        Template method with timing and error handling.

        Raises:
            AnalysisError: If the analysis fails unexpectedly. Other
                CueError subclasses are re-raised as they are.
        """
        start_time = time.perf_counter()

        try:
            self.logger.debug(
                f"Starting analysis: {len(series)} samples, "
                f"{series.duration:.3f}s"
            )

            result = self._analyze_impl(series, config)

            elapsed = time.perf_counter() - start_time
            self.logger.debug(f"Analysis complete in {elapsed:.3f}s")

            return result

        except CueError:
            raise

        except Exception as e:
            self.logger.error(f"Analysis failed: {e}")
            raise AnalysisError(
                f"{self.name} analysis failed: {e}",
                analyzer_name=self.name,
                original_error=e
            ) from e

    @abstractmethod
    def _analyze_impl(self, series: SampleSeries, config: CueConfig) -> T:
        raise NotImplementedError
