"""Machi backend: meetup matching core and HTTP API."""
