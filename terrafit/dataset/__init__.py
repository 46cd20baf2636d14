from .camera import CameraIntrinsics, transform_points
from .trajectory import Trajectory
from .image import DepthImageError, read_depth_image
from .dataset import DataSet
