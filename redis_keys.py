REDIS_META_KEY = "room:meta:{slug}" # room id
REDIS_PARTICIPANTS_KEY = "room:participants:{slug}" # room id - set of participant device IDs
REDIS_PARTICIPANT_KEY = "room:participant:{slug}:{device_id}" # room id + device id - participant hash
REDIS_MESSAGE_KEY = "room:message:{slug}:{message_id}" # room id + message id - message hash

# **Example `room:meta:{id}` hash fields**
# - `id` = `{roomId}`
# - `name` = optional display label
# - `owner_device_id` = device that created the room
# - `join_key_digest` = sha256 hex of the current join key
# - `created_at` / `expires_at` = ISO timestamps
# - `locked_at` = ISO timestamp, absent while the room is open

# **Example `room:participant:{id}:{device}` hash fields**
# - `display_name`, `last_seen_at` = refreshed on every join
# - `joined_at`, `is_banned` = written once, kept across joins
