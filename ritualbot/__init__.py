"""
ritualbot - scheduled group rituals for WhatsApp
"""

__version__ = "0.1.0"
__logo__ = "📆"
__title__ = "RitualBot"
