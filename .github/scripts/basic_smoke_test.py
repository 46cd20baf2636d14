import numpy as np

from terrafit import HeightFieldMesh


def main() -> None:
    rng = np.random.default_rng(0)
    points = rng.random((2000, 3))
    points[:, 1] = 0.3 * np.sin(3.0 * points[:, 0]) + 0.1 * points[:, 2]

    mesh = HeightFieldMesh(resolution=10)
    mesh.align(points)
    # Two passes over the same cloud keep the smoke test
    # lightweight across all CI runners.
    for _ in range(2):
        mesh.fit(points)
        mesh.relax(5)
    assert np.all(np.isfinite(mesh.vertices()))
    mesh.to_pyvista()


if __name__ == "__main__":
    main()
