"""
Built-in projection definitions and layer palette.

Stereo 70 (EPSG:31700) is the national grid used for Romanian cadastral
and urbanism data; uploads are expected in it unless a projection file
says otherwise.
"""

from ..domain.models import DatumShift, ProjectionParams

STEREO_70 = ProjectionParams(
    name="Stereo 70",
    proj="sterea",
    ellipsoid="krass",
    lat_0=46.0,
    lon_0=25.0,
    k=0.99975,
    x_0=500000.0,
    y_0=500000.0,
    datum_shift=DatumShift(
        dx=33.4, dy=-146.6, dz=-76.3,
        rx=-0.359, ry=-0.053, rz=0.844,
        ds=-0.84,
    ),
    units="m",
)

WGS84 = ProjectionParams(
    name="WGS84",
    proj="longlat",
    datum="WGS84",
)

# Order matters: layer colors are assigned by dataset position
DEFAULT_LAYER_COLORS: tuple[str, ...] = (
    "#3b82f6",  # blue
    "#ef4444",  # red
    "#10b981",  # green
    "#f59e0b",  # amber
    "#8b5cf6",  # purple
    "#ec4899",  # pink
    "#14b8a6",  # teal
    "#f97316",  # orange
)
