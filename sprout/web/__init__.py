"""Web server configuration, HTTP status errors and middleware planning."""