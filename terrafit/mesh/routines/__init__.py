from .raycast import RayCaster, NO_HIT
from .accumulate import accumulate
