"""
Configuration file for the application
"""

import os
import sys
from decimal import Decimal

import yaml
from pydantic import BaseModel, ConfigDict

from herbal_retail.utils.logger import app_logger

# Application configuration
APP_NAME = "herbal_retail_api"
APP_VERSION = "0.1.0"


def load_config():
    """加载配置文件，优先使用外部配置"""
    # 优先从exe文件所在目录查找配置文件
    if getattr(sys, 'frozen', False):
        exe_dir = os.path.dirname(os.path.abspath(sys.executable))
    else:
        exe_dir = os.getcwd()
    external_config_path = os.path.join(exe_dir, 'config', 'config.yml')

    if os.path.exists(external_config_path):
        config_path = external_config_path
        app_logger.info(f"Loading external config from: {config_path}")
    else:
        config_path = os.path.join(os.path.dirname(__file__), 'config', 'config.yml')
        app_logger.info(f"Loading internal config from: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


class RateTable(BaseModel):
    """
    Commission rates and thresholds.

    Rates are fractions of the sales figure they apply to; thresholds are
    fractions of the monthly target (0.90 -> 90% achievement).
    """
    model_config = ConfigDict(frozen=True)

    home_currency: str = "PKR"
    eligible_role: str = "health_rep"
    domestic_rate: Decimal = Decimal("0.04")
    international_rate: Decimal = Decimal("0.02")
    appointment_rate: Decimal = Decimal("0.10")
    release_threshold: Decimal = Decimal("0.90")
    bonus_threshold: Decimal = Decimal("1.50")
    default_target: Decimal = Decimal("100000")


config = load_config()

# 获取当前环境配置
current_env = os.getenv("APP_ENV", config['current_env'])
env_config = config['environments'][current_env]
db_config = env_config['database']
security_config = env_config.get('security', {})

rate_table = RateTable(**{k: str(v) for k, v in (config.get('commission') or {}).items()})
app_logger.info(f"Environment: {current_env}, home currency: {rate_table.home_currency}")
