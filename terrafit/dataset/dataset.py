import os
import warnings

import numpy as np

from terrafit.dataset.camera import CameraIntrinsics, transform_points
from terrafit.dataset.image import DepthImageError, read_depth_image
from terrafit.dataset.trajectory import Trajectory


def _frame_timestamp(path):
    return float(os.path.splitext(os.path.basename(path))[0])


def _sort_key(path):
    try:
        return (0, _frame_timestamp(path), path)
    except ValueError:
        return (1, 0.0, path)


class DataSet(object):
    def __init__(self, folder, intrinsics=None, stride=1,
                 depth_folder="depth", trajectory_file="groundtruth.txt"):
        """
        Point cloud source reading a TUM RGB-D style recording.

        The folder must contain a ``depth/`` directory of depth PNGs named by
        their timestamp (e.g. ``1305031102.160407.png``) and a
        ``groundtruth.txt`` file with one ``timestamp tx ty tz qx qy qz qw``
        camera pose per line. Every call to :meth:`next_point_cloud`
        back-projects the next depth frame through the camera pose
        interpolated at the frame's timestamp.

        Parameters
        ----------
        folder : str
            Recording directory.
        intrinsics : CameraIntrinsics, optional
            Depth camera model. Defaults to the Freiburg 1 calibration.
        stride : int, optional
            Pixel subsampling step. Default 1 (every pixel).
        depth_folder : str, optional
            Name of the depth image directory inside ``folder``.
        trajectory_file : str, optional
            Name of the pose file inside ``folder``.
        """
        self.folder = str(folder)
        depth_dir = os.path.join(self.folder, depth_folder)
        trajectory_path = os.path.join(self.folder, trajectory_file)
        if not os.path.isdir(depth_dir):
            raise FileNotFoundError("Depth image folder not found: {}".format(depth_dir))
        if not os.path.isfile(trajectory_path):
            raise FileNotFoundError("Couldn't open {}".format(trajectory_path))
        self.depth_files = sorted((os.path.join(depth_dir, name) for name in os.listdir(depth_dir)
                                   if name.lower().endswith(".png")), key=_sort_key)
        self.trajectory = Trajectory.from_file(trajectory_path)
        self.intrinsics = intrinsics if intrinsics is not None else CameraIntrinsics()
        self.stride = max(1, int(stride))
        self.next_file_idx = 0
        self.last_pose = None
        self.last_timestamp = None
        self.failed_frames = []

    def __len__(self):
        return len(self.depth_files)

    @property
    def exhausted(self):
        return self.next_file_idx >= len(self.depth_files)

    def reset(self):
        self.next_file_idx = 0
        self.last_pose = None
        self.last_timestamp = None
        self.failed_frames = []
        return None

    def _fail(self, path, reason):
        self.failed_frames.append(path)
        warnings.warn("Skipping frame {}: {}".format(os.path.basename(path), reason))
        return np.empty((0, 3)), False

    def next_point_cloud(self):
        """
        Produce the world-frame point cloud of the next depth frame.

        Returns
        -------
        points : ndarray of shape (n, 3)
            Valid points only; empty when the frame failed.
        success : bool
            False when no frames are left or the frame could not be
            synchronized with the trajectory or decoded. A failed frame is
            consumed, so the next call moves on to the following frame.
        """
        if self.exhausted:
            return np.empty((0, 3)), False
        path = self.depth_files[self.next_file_idx]
        self.next_file_idx += 1
        try:
            timestamp = _frame_timestamp(path)
        except ValueError:
            return self._fail(path, "file name is not a timestamp")
        pose = self.trajectory.pose_at(timestamp)
        if pose is None:
            return self._fail(path, "timestamp {:.6f} outside the trajectory [{:.6f}, {:.6f}]".format(
                timestamp, self.trajectory.start, self.trajectory.end))
        try:
            depth = read_depth_image(path)
        except DepthImageError as exc:
            return self._fail(path, str(exc))
        camera_points = self.intrinsics.back_project(depth, stride=self.stride)
        self.last_pose = pose
        self.last_timestamp = timestamp
        return transform_points(camera_points, pose), True

    def frames(self, limit=None):
        """
        Iterate over the point clouds of all remaining frames, skipping failed frames.

        Parameters
        ----------
        limit : int, optional
            Stop after this many successful frames.
        """
        produced = 0
        while not self.exhausted:
            if limit is not None and produced >= limit:
                return
            points, success = self.next_point_cloud()
            if not success:
                continue
            produced += 1
            yield points

    def __iter__(self):
        return self.frames()
