"""
比赛模块的序列化工具函数：
- 根据 ContestExpandOptions 决定是否带上 problems / participants / announcements，
  未要求的关系在结果中不存在（不是空列表）
- 嵌套的题目不带测试点；参赛者按用户名排序；公告按发布时间倒序
"""

from __future__ import annotations

from typing import Optional

from apps.accounts.serializers import serialize_user
from apps.problems.serializers import serialize_problem

from .models import Announcement, Contest
from .schemas import ContestExpandOptions


def serialize_announcement(announcement: Optional[Announcement]) -> Optional[dict]:
    """公告序列化：返回基础信息与时间戳"""
    if announcement is None:
        return None
    return {
        "announcement_id": announcement.announcement_id,
        "timestamp": announcement.timestamp,
        "subject": announcement.subject,
        "content": announcement.content,
    }


def serialize_contest(contest: Optional[Contest], *, expand: ContestExpandOptions | None = None) -> Optional[dict]:
    """比赛序列化：组织者始终内嵌，其余关系按 expand 展开"""
    if contest is None:
        return None
    expand = expand or ContestExpandOptions()
    data = {
        "contest_id": contest.contest_id,
        "organizer": serialize_user(contest.organizer),
        "organizer_username": contest.organizer_username,
        "display_name": contest.display_name,
        "format": contest.format,
        "start_time": contest.start_time,
        "duration": contest.duration,
        "description": contest.description,
        "is_public": contest.is_public,
    }
    if expand.include_problems:
        data["problems"] = [serialize_problem(link.problem) for link in contest.problem_links.all()]
    if expand.include_participants:
        data["participants"] = [serialize_user(link.user) for link in contest.participant_links.all()]
    if expand.include_announcements:
        data["announcements"] = [serialize_announcement(item) for item in contest.announcements.all()]
    return data
