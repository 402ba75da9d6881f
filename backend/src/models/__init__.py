from .models import MessageBuffer, TopicPoller, PollerRegistry
