from __future__ import annotations

from typing import Dict, Sequence, Tuple


CLASS_NAMES: Tuple[str, ...] = (
    "AIR COMPRESSOR",
    "ALTERNATOR",
    "BATTERY",
    "BRAKE CALIPER",
    "BRAKE PAD",
    "BRAKE ROTOR",
    "CAMSHAFT",
    "CARBERATOR",
    "CLUTCH PLATE",
    "COIL SPRING",
    "CRANKSHAFT",
    "CYLINDER HEAD",
    "DISTRIBUTOR",
    "ENGINE BLOCK",
    "ENGINE VALVE",
    "FUEL INJECTOR",
    "FUSE BOX",
    "GAS CAP",
    "HEADLIGHTS",
    "IDLER ARM",
    "IGNITION COIL",
    "INSTRUMENT CLUSTER",
    "LEAF SPRING",
    "LOWER CONTROL ARM",
    "MUFFLER",
    "OIL FILTER",
    "OIL PAN",
    "OIL PRESSURE SENSOR",
    "OVERFLOW TANK",
    "OXYGEN SENSOR",
    "PISTON",
    "PRESSURE PLATE",
    "RADIATOR",
    "RADIATOR FAN",
    "RADIATOR HOSE",
    "RADIO",
    "RIM",
    "SHIFT KNOB",
    "SIDE MIRROR",
    "SPARK PLUG",
    "SPOILER",
    "STARTER",
    "TAILLIGHTS",
    "THERMOSTAT",
    "TORQUE CONVERTER",
    "TRANSMISSION",
    "VACUUM BRAKE BOOSTER",
    "VALVE LIFTER",
    "WATER PUMP",
    "WINDOW REGULATOR",
)


def label_of(class_id: int, names: Sequence[str] = CLASS_NAMES) -> str:
    # Negative ids would silently wrap with plain indexing.
    if not 0 <= class_id < len(names):
        raise IndexError(f"class_id {class_id} out of range for {len(names)} class names")
    return names[class_id]


def load_class_names(metadata_path: str) -> Tuple[str, ...]:
    """
    Load class names from a lightweight `metadata.yaml` as written by the YOLO exporter:

        names:
          0: AIR COMPRESSOR
          1: ALTERNATOR
          ...

    Only the `names:` block is read, so no YAML dependency is needed. Ids must be
    contiguous from 0; the result is indexable by class id.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # A new top-level key ends the block.
            if not raw[:1].isspace():
                break

            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    if not names:
        raise ValueError(f"No class names found in {metadata_path}")
    missing = sorted(set(range(max(names) + 1)) - set(names))
    if missing:
        raise ValueError(f"Class ids missing from {metadata_path}: {missing}")
    return tuple(names[i] for i in range(len(names)))
