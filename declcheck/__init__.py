# This page intentionally left blank
