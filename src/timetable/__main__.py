from timetable.cli.app import app

app()
