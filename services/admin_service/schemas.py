from typing import List

from pydantic import BaseModel


class RecentOrder(BaseModel):
    title: str
    price: float
    student_name: str


class StatsResponse(BaseModel):
    revenue: float
    pending: int
    writers: int
    totalOrders: int
    recentOrders: List[RecentOrder]


class AnalyticsResponse(BaseModel):
    totalRevenue: float
    activeOrders: int
    completedOrders: int
    totalUsers: int
    recentOrders: List[RecentOrder]
