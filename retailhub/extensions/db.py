from pymongo import MongoClient
from redis import Redis


class MongoDB:
    def __init__(self):
        self.client = None
        self.db = None

    def init_app(self, app):
        uri = app.config["MONGO_URI"]
        db_name = app.config.get("DB_NAME", "retailhub")

        # MongoClient connects lazily; nothing is sent until the first operation
        self.client = MongoClient(uri, tz_aware=True)
        self.db = self.client[db_name]
        app.mongo = self.db

    def get_collection(self, name):
        if self.db is None:
            raise RuntimeError("MongoDB not initialized")
        return self.db[name]

class RedisConnection:
    def __init__(self):
        self.connection = None

    def init_app(self, app):
        host = app.config.get("REDIS_HOST", "localhost")
        port = int(app.config.get("REDIS_PORT", 6379))
        self.connection = Redis(host=host, port=port)
        app.redis = self.connection

# Export the instances
db = MongoDB()
redis_connection = RedisConnection()
