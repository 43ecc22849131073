"""LanceDB table layout for stored prompts."""

import pyarrow as pa

TABLE_NAME = "prompts"

# Filterable columns plus the full record as JSON. Timestamps are ISO strings.
PROMPTS_SCHEMA = pa.schema(
    [
        pa.field("id", pa.string()),
        pa.field("workflow", pa.string()),
        pa.field("score", pa.int32()),
        pa.field("is_valid", pa.bool_()),
        pa.field("tags", pa.list_(pa.string())),
        pa.field("author", pa.string()),
        pa.field("generated_by", pa.string()),
        pa.field("created_at", pa.string()),
        pa.field("updated_at", pa.string()),
        pa.field("payload", pa.string()),
    ]
)
