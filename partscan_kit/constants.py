"""
Fixed constants of the exported YOLOv8 parts model.
"""

INPUT_WIDTH = 640
INPUT_HEIGHT = 640
NUM_CLASSES = 50
NUM_ANCHORS = 8400
NUM_ATTRIBUTES = 4 + NUM_CLASSES

CONFIDENCE_THRESHOLD = 0.5
IOU_THRESHOLD = 0.7

INPUT_SHAPE = (1, 3, INPUT_HEIGHT, INPUT_WIDTH)
OUTPUT_SHAPE = (1, NUM_ATTRIBUTES, NUM_ANCHORS)
