import numpy as np
from scipy.spatial.transform import Rotation, Slerp


class Trajectory(object):
    """
    Time-stamped camera poses with interpolation between samples.

    Poses map camera coordinates to world coordinates. Translations are
    interpolated linearly and rotations spherically between the two samples
    bracketing the requested time.

    Parameters
    ----------
    timestamps : array_like of shape (n,)
        Sample times in seconds.
    translations : array_like of shape (n, 3)
        Camera positions ``(tx, ty, tz)``.
    quaternions : array_like of shape (n, 4)
        Camera orientations in scalar-last order ``(qx, qy, qz, qw)``.
    """
    def __init__(self, timestamps, translations, quaternions):
        timestamps = np.asarray(timestamps, dtype=np.float64).reshape(-1)
        translations = np.asarray(translations, dtype=np.float64).reshape(-1, 3)
        quaternions = np.asarray(quaternions, dtype=np.float64).reshape(-1, 4)
        if not (timestamps.shape[0] == translations.shape[0] == quaternions.shape[0]):
            raise ValueError("Timestamps, translations and quaternions must have the same length.")
        if timestamps.shape[0] == 0:
            raise ValueError("A trajectory needs at least one pose.")
        order = np.argsort(timestamps, kind="stable")
        timestamps = timestamps[order]
        # Slerp needs strictly increasing times; keep the first of duplicated stamps
        keep = np.concatenate(([True], np.diff(timestamps) > 0))
        self.timestamps = timestamps[keep]
        self.translations = translations[order][keep]
        self.rotations = Rotation.from_quat(quaternions[order][keep])
        if self.timestamps.shape[0] > 1:
            self._slerp = Slerp(self.timestamps, self.rotations)
        else:
            self._slerp = None

    @classmethod
    def from_file(cls, path):
        """
        Read a pose file with one ``timestamp tx ty tz qx qy qz qw`` entry per line.

        Lines starting with ``#`` are comments.
        """
        try:
            data = np.loadtxt(path, comments="#", ndmin=2, dtype=np.float64)
        except ValueError as exc:
            raise ValueError("Malformed trajectory file {}: {}".format(path, exc)) from exc
        if data.shape[0] == 0:
            raise ValueError("Trajectory file {} contains no poses.".format(path))
        if data.shape[1] != 8:
            raise ValueError("Trajectory file {} has {} columns per line, expected 8 "
                             "(timestamp tx ty tz qx qy qz qw).".format(path, data.shape[1]))
        return cls(data[:, 0], data[:, 1:4], data[:, 4:8])

    def __len__(self):
        return self.timestamps.shape[0]

    @property
    def start(self):
        return float(self.timestamps[0])

    @property
    def end(self):
        return float(self.timestamps[-1])

    def pose_at(self, timestamp):
        """
        Interpolated camera-to-world pose at ``timestamp``.

        Returns
        -------
        pose : ndarray of shape (4, 4) or None
            ``None`` when ``timestamp`` lies outside the recorded interval.
        """
        timestamp = float(timestamp)
        if timestamp < self.start or timestamp > self.end:
            return None
        pose = np.eye(4)
        if self._slerp is None:
            pose[:3, :3] = self.rotations[0].as_matrix()
            pose[:3, 3] = self.translations[0]
            return pose
        pose[:3, :3] = self._slerp([timestamp]).as_matrix()[0]
        for axis in range(3):
            pose[axis, 3] = np.interp(timestamp, self.timestamps, self.translations[:, axis])
        return pose
