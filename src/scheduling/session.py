"""Drives the booking form's teacher picker through resolutions.

While a resolution is in flight the picker is non-interactive. If the user
changes date or time before it completes, a newer resolution starts and the
older result is discarded when it arrives: last request wins, not last
arrival. Fetches are not cancelled, their results are simply not applied.
Fetch failures never reach this layer (the resolver degrades them); an error
from a superseded refresh is logged and dropped along with its result.
"""

from typing import Protocol

from src.scheduling.intervals import parse_interval
from src.scheduling.logging import get_logger
from src.scheduling.normalize import parse_date
from src.scheduling.resolver import ConflictResolver, Resolution

log = get_logger(__name__)


class ResourcePicker(Protocol):
    """The UI control listing teachers in the booking form."""

    def set_interactive(self, enabled: bool) -> None: ...

    def populate(self, resolution: Resolution) -> None: ...


class PickerSession:
    """One open booking form and its teacher picker.

    Args:
        resolver: Resolver used for every refresh.
        picker: UI collaborator receiving the results.
    """

    def __init__(self, resolver: ConflictResolver, picker: ResourcePicker) -> None:
        self.resolver = resolver
        self.picker = picker
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def open(
        self,
        date: object = None,
        start_time: object = None,
        end_time: object = None,
        exclude_record_id: int | str | None = None,
    ) -> Resolution | None:
        """Start a new form session, then resolve the initial form values."""
        self.resolver.store.begin_form_session()
        return await self.refresh(date, start_time, end_time, exclude_record_id)

    async def refresh(
        self,
        date: object,
        start_time: object,
        end_time: object,
        exclude_record_id: int | str | None = None,
    ) -> Resolution | None:
        """Resolve raw form values and apply the result if still current.

        Returns:
            The applied Resolution, or None if a newer refresh superseded it.
        """
        self._generation += 1
        generation = self._generation

        target_date = parse_date(date, self.resolver.store.config.display_timezone)
        interval = parse_interval(start_time, end_time)

        self.picker.set_interactive(False)
        try:
            resolution = await self.resolver.resolve(target_date, interval, exclude_record_id)
        except Exception as e:
            if generation != self._generation:
                log.warning(
                    "superseded_resolution_failed",
                    generation=generation,
                    current=self._generation,
                    error=str(e),
                    exc_info=e,
                )
                return None
            self.picker.set_interactive(True)
            raise

        if generation != self._generation:
            log.debug(
                "resolution_discarded",
                generation=generation,
                current=self._generation,
                date=target_date,
            )
            return None

        self.picker.populate(resolution)
        self.picker.set_interactive(True)
        return resolution
