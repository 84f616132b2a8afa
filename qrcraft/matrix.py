"""Matrix providers: payload text + error-correction level -> QR module matrix.

The symbol encoding itself (segmentation, Reed-Solomon, placement and
masking) is delegated to ``qrcode`` or ``segno``. This module only wraps
their output in an immutable ``ModuleMatrix`` and maps capacity failures
onto ``EncodingCapacityError``.
"""

from typing import Iterator, Protocol

import numpy as np
import qrcode
import qrcode.constants
import qrcode.exceptions
import segno

from qrcraft.errors import EncodingCapacityError
from qrcraft.logging import audit, get_logger, trace
from qrcraft.models import ECCLevel

log = get_logger("matrix")

QRCODE_ECC = {
    ECCLevel.L: qrcode.constants.ERROR_CORRECT_L,
    ECCLevel.M: qrcode.constants.ERROR_CORRECT_M,
    ECCLevel.Q: qrcode.constants.ERROR_CORRECT_Q,
    ECCLevel.H: qrcode.constants.ERROR_CORRECT_H,
}


class ModuleMatrix:
    """Square, read-only grid of modules. ``True`` is dark."""

    __slots__ = ("_cells",)

    def __init__(self, cells):
        arr = np.array(cells, dtype=bool)
        if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
            raise ValueError(f"module matrix must be square, got shape {arr.shape}")
        arr.setflags(write=False)
        self._cells = arr

    @property
    def size(self) -> int:
        return self._cells.shape[0]

    @property
    def cells(self) -> np.ndarray:
        return self._cells

    def get(self, row: int, col: int) -> bool:
        return bool(self._cells[row, col])

    def dark_modules(self) -> Iterator[tuple[int, int]]:
        """Yield ``(row, col)`` of every dark module in row-major order."""
        for row, col in np.argwhere(self._cells):
            yield int(row), int(col)

    def dark_count(self) -> int:
        return int(self._cells.sum())

    def __eq__(self, other):
        if not isinstance(other, ModuleMatrix):
            return NotImplemented
        return np.array_equal(self._cells, other._cells)

    def __repr__(self):
        return f"ModuleMatrix(size={self.size}, dark={self.dark_count()})"


class MatrixProvider(Protocol):
    name: str

    def encode(self, payload: str, level: ECCLevel) -> ModuleMatrix:
        ...


class QrcodeMatrixProvider:
    """Matrix provider backed by the ``qrcode`` package (auto version, auto mask)."""

    name = "qrcode"

    @trace
    def encode(self, payload: str, level: ECCLevel) -> ModuleMatrix:
        level = ECCLevel(level)
        qr = qrcode.QRCode(
            version=None,
            error_correction=QRCODE_ECC[level],
            box_size=1,
            border=0,
        )
        qr.add_data(payload)
        try:
            qr.make(fit=True)
        except (qrcode.exceptions.DataOverflowError, ValueError) as e:
            audit("matrix.capacity_exceeded", logger=log, backend=self.name,
                  length=len(payload), ecc=level.value)
            raise EncodingCapacityError(len(payload), level.value) from e

        matrix = ModuleMatrix(qr.modules)
        audit("matrix.encoded", logger=log, backend=self.name, version=qr.version,
              size=f"{matrix.size}x{matrix.size}", ecc=level.value)
        return matrix


class SegnoMatrixProvider:
    """Matrix provider backed by ``segno``. Error level is never boosted."""

    name = "segno"

    @trace
    def encode(self, payload: str, level: ECCLevel) -> ModuleMatrix:
        level = ECCLevel(level)
        try:
            qr = segno.make_qr(payload, error=level.value, boost_error=False)
        except segno.DataOverflowError as e:
            audit("matrix.capacity_exceeded", logger=log, backend=self.name,
                  length=len(payload), ecc=level.value)
            raise EncodingCapacityError(len(payload), level.value) from e

        matrix = ModuleMatrix([[bool(bit) for bit in row] for row in qr.matrix])
        audit("matrix.encoded", logger=log, backend=self.name, version=qr.version,
              size=f"{matrix.size}x{matrix.size}", ecc=level.value)
        return matrix


_PROVIDERS = {
    QrcodeMatrixProvider.name: QrcodeMatrixProvider,
    SegnoMatrixProvider.name: SegnoMatrixProvider,
}


def get_matrix_provider(name: str = "qrcode") -> MatrixProvider:
    try:
        return _PROVIDERS[name]()
    except KeyError:
        raise ValueError(f"Unknown matrix backend {name!r}; expected one of {sorted(_PROVIDERS)}") from None
