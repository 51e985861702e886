"""Ocean-current sources and point sampling."""

from .current_sources import (
    UNDEF,
    CurrentSource,
    CurrentSourceError,
    GridCurrentSource,
    GribCurrentSource,
    Wgrib2CurrentSource,
    open_current_source,
)
from .current_sampler import CurrentFieldSampler, CurrentSample

__all__ = [
    'UNDEF',
    'CurrentSource',
    'CurrentSourceError',
    'GridCurrentSource',
    'GribCurrentSource',
    'Wgrib2CurrentSource',
    'open_current_source',
    'CurrentFieldSampler',
    'CurrentSample',
]
