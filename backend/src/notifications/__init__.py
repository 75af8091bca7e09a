"""In-app, realtime and email notifications for workflow events"""
