__version__ = "0.1.0"

from terrafit.mesh.mesh import HeightFieldMesh, MeshNotAlignedError
from terrafit.mesh.parameters import MeshParameters
from terrafit.mesh.alignment import AlignmentTransform
from terrafit.dataset.dataset import DataSet
