"""
Architecture constraints for the two-layer Q-network.

The network is fixed to one hidden layer:

    input (2-16) → hidden (4-256, ReLU) → output (3, linear)

Parameter count:

    P = i·h + h + h·o + o

Violations are programmer errors and raise :class:`ArchitectureError`
rather than being clamped.
"""

from __future__ import annotations

from typing import Dict

MIN_INPUT_SIZE = 2
MAX_INPUT_SIZE = 16
MIN_HIDDEN_SIZE = 4
MAX_HIDDEN_SIZE = 256
OUTPUT_SIZE = 3
MAX_PARAMETERS = 50000


class ArchitectureError(ValueError):
    """Raised for invalid network shapes or mismatched weight copies."""


def calculate_parameter_count(input_size: int, hidden_size: int, output_size: int) -> int:
    """
    Total weights and biases of the network.

    Examples
    --------
    >>> calculate_parameter_count(2, 8, 3)
    51
    """
    return input_size * hidden_size + hidden_size + hidden_size * output_size + output_size


def validate_architecture(
    input_size: int,
    hidden_size: int,
    output_size: int,
    max_parameters: int = MAX_PARAMETERS,
) -> int:
    """
    Check the architecture against the supported limits.

    Returns
    -------
    int
        Parameter count of the valid architecture

    Raises
    ------
    ArchitectureError
        If any size is out of range or the parameter cap is exceeded
    """
    if not MIN_INPUT_SIZE <= input_size <= MAX_INPUT_SIZE:
        raise ArchitectureError(
            f"Input size must be between {MIN_INPUT_SIZE} and {MAX_INPUT_SIZE}, "
            f"got {input_size}"
        )
    if output_size != OUTPUT_SIZE:
        raise ArchitectureError(
            f"Output size must be {OUTPUT_SIZE} (left, brake, right), got {output_size}"
        )
    if not MIN_HIDDEN_SIZE <= hidden_size <= MAX_HIDDEN_SIZE:
        raise ArchitectureError(
            f"Hidden size must be between {MIN_HIDDEN_SIZE} and {MAX_HIDDEN_SIZE}, "
            f"got {hidden_size}"
        )

    count = calculate_parameter_count(input_size, hidden_size, output_size)
    if count > max_parameters:
        raise ArchitectureError(
            f"Parameter count {count} exceeds maximum of {max_parameters}"
        )
    return count


def architecture_dict(input_size: int, hidden_size: int, output_size: int) -> Dict[str, int]:
    """Architecture summary in the serialized model layout."""
    return {
        "inputSize": input_size,
        "hiddenSize": hidden_size,
        "outputSize": output_size,
        "parameterCount": calculate_parameter_count(input_size, hidden_size, output_size),
    }
