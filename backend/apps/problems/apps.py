from django.apps import AppConfig


class ProblemsConfig(AppConfig):
    """
    题目模块应用配置：
    - 题目与测试点，以及题目到测试点的有序集合关系
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.problems"
    label = "problems"
    verbose_name = "Problems"
