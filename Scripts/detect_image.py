import argparse
import json

import cv2

from partscan_kit import PostConfig, draw_detections, load_class_names, load_pipeline
from partscan_kit.labels import CLASS_NAMES


def read_image(path: str):
    img = cv2.imread(path, cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {path}")
    return img


def main() -> int:
    parser = argparse.ArgumentParser(description="Detect car parts in one image and print [x1, y1, x2, y2, label, conf] rows.")
    parser.add_argument("image", help="Path to an input image.")
    parser.add_argument("--model", default="Models/best.onnx", help="Path to the YOLOv8 .onnx model.")
    parser.add_argument("--metadata", default=None, help="Optional metadata.yaml overriding the built-in class names.")
    parser.add_argument("--conf", type=float, default=0.5, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.7, help="IoU threshold for NMS.")
    parser.add_argument("--no-clamp", action="store_true", help="Do not clip boxes to the image bounds.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--coreml", action="store_true", help="Prefer the CoreML execution provider.")
    parser.add_argument("--out", default=None, help="Optional output path for the annotated image.")
    parser.add_argument("--show", action="store_true", help="Show a window with the annotated image.")
    args = parser.parse_args()

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    pipeline = load_pipeline(
        model_path=args.model,
        post_cfg=PostConfig(conf_threshold=args.conf, iou_threshold=args.iou, clamp_boxes=not args.no_clamp),
        class_names=load_class_names(args.metadata) if args.metadata else CLASS_NAMES,
        onnx_providers=onnx_providers,
        use_coreml=bool(args.coreml),
    )

    img = read_image(args.image)
    detections = pipeline(img)
    print(json.dumps([det.as_row() for det in detections], indent=2))

    if args.out or args.show:
        vis = draw_detections(img, detections, show_score=True)
        if args.out:
            ok = cv2.imwrite(args.out, vis)
            if not ok:
                raise RuntimeError(f"Failed to write output image: {args.out}")
        if args.show:
            cv2.imshow("detections", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
