"""stwtrack: speed through water and surface current from GPS tracks and GRIB currents."""

__version__ = "0.3.0"
