from .hfm import read_hfm, write_hfm
from .export import to_polydata, write_surface
