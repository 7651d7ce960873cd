from fastapi import Request

from weatherdash.services.dashboard import WeatherDashboard


def get_dashboard(request: Request) -> WeatherDashboard:
    """Dashboard context of the running app"""
    return request.app.state.dashboard
