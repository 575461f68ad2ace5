import json
import os

from src.api.main import WEBSOCKET_ENDPOINT_DOC, app

# REST routes live under /api/v1
openapi_schema = app.openapi()

# OpenAPI has no WebSocket support; document the live worklist channel as an extension
openapi_schema["x-websocket-endpoints"] = [WEBSOCKET_ENDPOINT_DOC]

output_dir = "interfaces"
os.makedirs(output_dir, exist_ok=True)
output_path = os.path.join(output_dir, "openapi.json")

with open(output_path, "w") as f:
    json.dump(openapi_schema, f, indent=2)
