"""
Система метрик для мониторинга распознавания и роутинга
"""

from collections import defaultdict, deque
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

from utils.logger import setup_logger

logger = setup_logger(name="metrics", level="INFO")


class MetricsCollector:
    """Сбор и анализ метрик распознавания"""

    def __init__(self, max_history_size: int = 1000):
        self.max_history_size = max_history_size

        # Счетчики исходов распознавания и действий роутинга
        self.recognition_counts = defaultdict(int)
        self.routing_counts = defaultdict(int)

        # История событий
        self.history = deque(maxlen=max_history_size)

    def record_recognition(self, outcome: str, conversation_id: Optional[str] = None, intent: Optional[str] = None):
        """Запись исхода распознавания"""
        self.recognition_counts[outcome] += 1
        self.history.append({
            'kind': 'recognition',
            'value': outcome,
            'conversation_id': conversation_id,
            'intent': intent,
            'timestamp': datetime.now(),
        })
        logger.debug(f"Recognition {outcome} for conversation {conversation_id} (intent={intent})")

    def record_routing(self, action: str, conversation_id: Optional[str] = None):
        """Запись действия роутинга"""
        self.routing_counts[action] += 1
        self.history.append({
            'kind': 'routing',
            'value': action,
            'conversation_id': conversation_id,
            'timestamp': datetime.now(),
        })
        logger.debug(f"Routing {action} for conversation {conversation_id}")

    def get_stats(self, hours: int = 24) -> Dict[str, Any]:
        """Получение статистики за указанное количество часов"""
        cutoff_time = datetime.now() - timedelta(hours=hours)
        recent = [record for record in self.history if record['timestamp'] >= cutoff_time]

        recognition = defaultdict(int)
        routing = defaultdict(int)
        for record in recent:
            if record['kind'] == 'recognition':
                recognition[record['value']] += 1
            else:
                routing[record['value']] += 1

        total_recognitions = sum(recognition.values())
        degraded = recognition.get('context_not_persisted', 0) + recognition.get('context_unavailable', 0)

        return {
            'period_hours': hours,
            'total_recognitions': total_recognitions,
            'active_conversations': len({r['conversation_id'] for r in recent if r['conversation_id']}),
            'recognition_outcomes': dict(recognition),
            'routing_actions': dict(routing),
            'degradation_rate': degraded / total_recognitions * 100 if total_recognitions else 0.0,
        }

    def reset(self):
        """Сброс всех счётчиков"""
        self.recognition_counts.clear()
        self.routing_counts.clear()
        self.history.clear()

    def log_daily_stats(self):
        """Логирование ежедневной статистики"""
        stats = self.get_stats(24)
        logger.info(f"Daily stats: {stats}")


# Глобальный экземпляр метрик
metrics = MetricsCollector()
