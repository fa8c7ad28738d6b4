from __future__ import annotations

from typing import Any, Dict


class ImporterError(ValueError):
    """Base class of every conversion failure.

    ``node_name`` and ``node_op`` may be empty when the error is raised by a
    collaborator that does not know which node it is working on; the lowering
    loop fills them in before the error reaches the caller.
    """

    reason_code = "importer_error"

    def __init__(
        self,
        message: str,
        *,
        node_name: str = "",
        node_op: str = "",
        reason_code: str | None = None,
    ) -> None:
        super().__init__(message)
        if reason_code is not None:
            self.reason_code = str(reason_code)
        self.message = str(message)
        self.node_name = str(node_name)
        self.node_op = str(node_op)

    def attach_node(self, node_name: str, node_op: str) -> "ImporterError":
        if self.node_name == "":
            self.node_name = str(node_name)
        if self.node_op == "":
            self.node_op = str(node_op)
        return self

    def __str__(self) -> str:
        if self.node_name == "" and self.node_op == "":
            return self.message
        return f"{self.message} (op={self.node_op} node={self.node_name})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_name": self.node_name,
            "tf_op": self.node_op,
            "reason_code": self.reason_code,
            "message": self.message,
        }


class MalformedReference(ImporterError):
    reason_code = "malformed_reference"


class MissingAttribute(ImporterError):
    reason_code = "missing_required_attribute"


class UnknownLayout(ImporterError):
    reason_code = "unknown_data_format"


class UnsupportedQuantization(ImporterError):
    reason_code = "unsupported_quantization"


class UnsupportedTensorType(ImporterError):
    reason_code = "unsupported_tensor_type"


class ShapeMismatch(ImporterError):
    reason_code = "shape_mismatch"


class UnsupportedConfiguration(ImporterError):
    reason_code = "unsupported_configuration"


class UnknownInput(ImporterError):
    reason_code = "unknown_input"


class DuplicateLayerName(ImporterError):
    reason_code = "duplicate_layer_name"
