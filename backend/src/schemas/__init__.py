from .schemas import PublishRequest, TopicsResponse, MessagesResponse, StatsResponse
