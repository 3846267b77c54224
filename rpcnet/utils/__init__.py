"""Host and origin matching, CORS decisions, event-loop executor and accept back-off."""