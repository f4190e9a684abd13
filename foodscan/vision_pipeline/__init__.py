"""
Vision pipeline package (scanning client side):
- models: typed detections, classifications and vision annotations
- backend_client: HTTP client for the classification / OCR correction API
- classification_store: local word buckets (food / non-food / generic)
- classification_service: cached lookups, TTL sync, batch classification
- response_parser: vision response -> candidate food detections
- detection_store: per-session accumulation and pending resolution
- scanner: frame handling and bounded finalization
"""
