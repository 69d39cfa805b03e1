from .master import Master as Master
