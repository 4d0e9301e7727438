REDIS_META_KEY = "room:meta:{slug}" # room id - hash of room metadata
REDIS_STROKES_KEY = "room:strokes:{slug}" # room id - list of JSON encoded strokes, oldest first
REDIS_FILES_KEY = "room:files:{slug}" # room id - list of JSON encoded shared file metadata, oldest first

# **Example `room:meta:{id}` hash fields**
# - `room_id` = `{roomId}`
# - `name` = display name of the room
# - `created_by` = user id of the creator
# - `created_at` = ISO timestamp

# **Example `room:strokes:{id}` entry**
# - `{"x0": 0, "y0": 0, "x1": 10, "y1": 10, "color": "#fff", "width": 3}`

# **Example `room:files:{id}` entry**
# - `{"filename": "notes.pdf", "fileId": "f1", "uploadedBy": "u1", "uploadedAt": "2026-01-01T10:00:00"}`
