from django.apps import AppConfig


class CollectionsConfig(AppConfig):
    """
    题单模块应用配置：
    - 题单以及题单到题目的有序集合关系
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.collections"
    label = "collections"
    verbose_name = "Collections"
